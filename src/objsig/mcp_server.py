"""MCP server that exposes objsig signature help and hover as tools.

This server wraps the `osig` CLI, so each call sees the workspace
configuration of the file it is asked about.
"""

import json
import subprocess
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

app = Server("osig")

_POSITION_PROPERTIES = {
    "file": {
        "type": "string",
        "description": "Path of a .cls, .mac, .int or .inc file",
    },
    "line": {
        "type": "integer",
        "description": "0-indexed line of the position",
    },
    "character": {
        "type": "integer",
        "description": "0-indexed character of the position",
    },
    "symbols": {
        "type": "string",
        "description": "Optional YAML class dictionary export to use instead of the configured server",
    },
}


@app.list_tools()
async def list_tools() -> list[Tool]:
    """Declare available tools."""
    return [
        Tool(
            name="osig_signature_help",
            description=(
                "Show the signature of the ObjectScript call (method, macro or routine label) "
                "whose argument list contains a position, with the active parameter. "
                "Returns the LSP SignatureHelp as JSON."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    **_POSITION_PROPERTIES,
                    "trigger_character": {
                        "type": "string",
                        "description": "'(' or ',' when the request follows typing that character",
                    },
                },
                "required": ["file", "line", "character"],
            },
        ),
        Tool(
            name="osig_hover",
            description=(
                "Describe the parameter of an ObjectScript method or routine call at a position: "
                "the signature with that parameter highlighted. Returns the LSP Hover as JSON."
            ),
            inputSchema={
                "type": "object",
                "properties": dict(_POSITION_PROPERTIES),
                "required": ["file", "line", "character"],
            },
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls by routing to the matching CLI command."""
    if name == "osig_signature_help":
        extra = []
        if arguments.get("trigger_character"):
            extra = ["--trigger-character", arguments["trigger_character"]]
        return await _run("signature", arguments, extra)
    elif name == "osig_hover":
        return await _run("hover", arguments, [])

    raise ValueError(f"Unknown tool: {name}")


def _command(command: str, arguments: dict, extra: list[str]) -> list[str]:
    args = ["osig", command, str(arguments["file"]), str(arguments["line"]), str(arguments["character"])]
    if arguments.get("symbols"):
        args += ["--symbols", str(arguments["symbols"])]
    return args + extra


async def _run(command: str, arguments: dict, extra: list[str]) -> list[TextContent]:
    """Run an osig command and return its JSON result.

    Args:
        command: "signature" or "hover"
        arguments: Tool arguments (file, line, character, optional symbols)
        extra: Additional command line options

    Returns:
        List containing a single TextContent with the result
    """
    try:
        result = subprocess.run(
            _command(command, arguments, extra),
            capture_output=True,
            text=True,
            check=True,
        )

        payload = json.loads(result.stdout)

        if payload is None:
            return [
                TextContent(
                    type="text",
                    text=f"No signature found at {arguments['file']}:{arguments['line']}:{arguments['character']}",
                )
            ]

        return [
            TextContent(
                type="text",
                text=json.dumps(payload, indent=2),
            )
        ]

    except subprocess.CalledProcessError as e:
        error_msg = e.stderr.strip() if e.stderr else str(e)
        return [
            TextContent(
                type="text",
                text=f"Error running osig {command}: {error_msg}",
            )
        ]
    except json.JSONDecodeError as e:
        return [
            TextContent(
                type="text",
                text=f"Error parsing osig output: {e}",
            )
        ]
    except Exception as e:
        return [
            TextContent(
                type="text",
                text=f"Unexpected error: {e}",
            )
        ]


async def main():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
