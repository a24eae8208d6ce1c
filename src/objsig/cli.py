import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
import yaml
from lsprotocol.converters import get_converter
from lsprotocol.types import (
    Position,
    SignatureHelpContext,
    SignatureHelpParams,
    SignatureHelpTriggerKind,
    TextDocumentIdentifier,
)
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from objsig import __version__
from objsig.client import AtelierClient, ServerRoutineSource
from objsig.config import find_workspace_root, load_config
from objsig.dictionary import SymbolDictionary
from objsig.document import Document
from objsig.engine import SignatureEngine
from objsig.languages import Attribute, Language
from objsig.routines import WorkspaceRoutineSource
from objsig.tokenizer import classify
from objsig.tokens import find_token_at

CACHE_DIR_NAME = ".objsig-cache"

app = typer.Typer(
    help="objsig - signature help and parameter hover for ObjectScript",
    no_args_is_help=True,
)

console = Console()

logger = logging.getLogger(__name__)


def build_engine(path: Path, symbols: Path | None = None) -> SignatureEngine:
    """Create an engine for a file, configured from its workspace's .objsig.

    With a symbols file the class dictionary is read offline from that YAML
    export and routines from the workspace; otherwise both come from the
    configured server.
    """
    root = find_workspace_root(path)
    config = load_config(root)
    if symbols is not None:
        if not symbols.exists():
            raise FileNotFoundError(f"Symbols file not found: {symbols}")
        dictionary = SymbolDictionary(root / CACHE_DIR_NAME)
        dictionary.load_yaml(symbols)
        return SignatureEngine(dictionary, WorkspaceRoutineSource(root), config)

    client = AtelierClient(config.server)
    return SignatureEngine(client, ServerRoutineSource(client), config)


def _echo_json(result) -> None:
    typer.echo(json.dumps(get_converter().unstructure(result), indent=2))


@app.command()
def signature(
    file: Path,
    line: int,
    character: int,
    trigger_character: Optional[str] = typer.Option(
        None, "--trigger-character", "-t", help="Character that triggered the request: '(' or ','"
    ),
    symbols: Optional[Path] = typer.Option(
        None, "--symbols", "-s", help="YAML class dictionary export to use instead of the server"
    ),
):
    """Show the signature of the call around a position.

    LINE and CHARACTER are 0-indexed, as in the Language Server Protocol.

    Examples:
        osig signature src/Util.mac 4 22
        osig signature src/Sample/Person.cls 30 41 -t "(" -s symbols.yaml
    """
    try:
        document = Document.from_path(file)
        engine = build_engine(file, symbols)
        if trigger_character:
            context = SignatureHelpContext(
                trigger_kind=SignatureHelpTriggerKind.TriggerCharacter,
                is_retrigger=False,
                trigger_character=trigger_character,
            )
        else:
            context = SignatureHelpContext(trigger_kind=SignatureHelpTriggerKind.Invoked, is_retrigger=False)
        params = SignatureHelpParams(
            text_document=TextDocumentIdentifier(uri=document.uri),
            position=Position(line=line, character=character),
            context=context,
        )
        result = engine.signature_help(document, classify(document), params)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)

    _echo_json(result)


@app.command()
def hover(
    file: Path,
    line: int,
    character: int,
    symbols: Optional[Path] = typer.Option(
        None, "--symbols", "-s", help="YAML class dictionary export to use instead of the server"
    ),
):
    """Describe the parameter under a position.

    LINE and CHARACTER are 0-indexed.
    """
    try:
        document = Document.from_path(file)
        engine = build_engine(file, symbols)
        result = engine.hover(document, classify(document), Position(line=line, character=character))
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)

    _echo_json(result)


@app.command()
def tokens(
    file: Path,
    line: Optional[int] = typer.Option(None, "--line", "-l", help="Only show tokens of this line"),
    character: Optional[int] = typer.Option(
        None, "--character", "-c", help="With --line, mark the token containing this character"
    ),
):
    """Show how a file is classified into tokens."""
    try:
        document = Document.from_path(file)
        classified = classify(document)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if line is not None and not 0 <= line < len(classified):
        typer.echo(f"Error: {file} has no line {line}", err=True)
        raise typer.Exit(code=1)

    marked = None
    if line is not None and character is not None:
        marked = find_token_at(classified[line], character)

    table = Table(title=str(file))
    table.add_column("Line", justify="right")
    table.add_column("Token", justify="right")
    table.add_column("Start", justify="right")
    table.add_column("Length", justify="right")
    table.add_column("Language")
    table.add_column("Attribute")
    table.add_column("Text")

    lines = [line] if line is not None else range(len(classified))
    for number in lines:
        text = document.line(number)
        for index, token in enumerate(classified[number]):
            table.add_row(
                str(number),
                str(index),
                str(token.start),
                str(token.length),
                Language(token.language).name,
                Attribute(token.attribute).name,
                text[token.start:token.end],
                style="bold" if index == marked else None,
            )

    console.print(table)


@app.command()
def mcp_server():
    """Start the MCP server.

    This command starts the Model Context Protocol server that exposes
    signature help and parameter hover as tools over stdio.
    """
    from objsig.mcp_server import main

    asyncio.run(main())


def _version_callback(value: bool):
    """Show version and exit."""
    if value:
        console.print(f"objsig version {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log resolution details to stderr"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
