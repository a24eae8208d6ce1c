import json

import pytest
from typer.testing import CliRunner

from objsig.cli import CACHE_DIR_NAME, app
from objsig.config import CONFIG_FILE_NAME

runner = CliRunner()

ROUTINE = """\
ROUTINE Demo
Main
 do Fmt(x, y)
 set z = $$$Sum(a, b)
 quit
Fmt(val, sep) ; format
 quit val
"""

SYMBOLS = """\
macros:
  - name: Sum
    signature: '(x,y)'
    expansion: ['(x+y)']
"""


@pytest.fixture
def workspace(tmp_path):
    """A workspace holding a routine and an offline symbols export."""
    (tmp_path / CONFIG_FILE_NAME).write_text("locale: en\n")
    (tmp_path / "Demo.mac").write_text(ROUTINE)
    (tmp_path / "symbols.yaml").write_text(SYMBOLS)
    return tmp_path


def invoke(workspace, *args):
    return runner.invoke(app, [*args, "--symbols", str(workspace / "symbols.yaml")])


def test_app_has_commands():
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    for command in ("signature", "hover", "tokens", "mcp-server"):
        assert command in result.stdout


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert "objsig version" in result.stdout


def test_signature_invoked(workspace):
    """Without a trigger character the request is an explicit invocation."""
    result = invoke(workspace, "signature", str(workspace / "Demo.mac"), "2", "12")

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["activeSignature"] == 0
    assert payload["activeParameter"] == 1
    signature = payload["signatures"][0]
    assert signature["label"] == "Fmt(val, sep)"
    assert signature["parameters"] == [{"label": [4, 7]}, {"label": [9, 12]}]
    assert signature["documentation"]["kind"] == "markdown"
    assert signature["documentation"]["value"] == "Parameter at source: `sep`"


def test_signature_macro_from_symbols(workspace):
    """Macros are resolved from the symbols export, expansion included."""
    result = invoke(workspace, "signature", str(workspace / "Demo.mac"), "3", "16", "-t", "(")

    assert result.exit_code == 0
    signature = json.loads(result.stdout)["signatures"][0]
    assert signature["label"] == "(x, y)"
    assert "<b><i><u>x</u></i></b>+y" in signature["documentation"]["value"]
    assert (workspace / CACHE_DIR_NAME).is_dir()


def test_signature_nothing_found(workspace):
    """Positions outside any call print null."""
    result = invoke(workspace, "signature", str(workspace / "Demo.mac"), "4", "2")

    assert result.exit_code == 0
    assert json.loads(result.stdout) is None


def test_hover(workspace):
    result = invoke(workspace, "hover", str(workspace / "Demo.mac"), "2", "9")

    assert result.exit_code == 0
    hover = json.loads(result.stdout)
    assert hover["contents"]["value"] == "Fmt(`val`, sep)\n\nParameter at source: `val`"
    assert hover["range"]["start"] == {"line": 2, "character": 9}


def test_signature_missing_file(workspace):
    result = invoke(workspace, "signature", str(workspace / "Nope.mac"), "0", "0")
    assert result.exit_code == 1


def test_signature_missing_symbols(workspace):
    result = runner.invoke(
        app,
        ["signature", str(workspace / "Demo.mac"), "2", "12", "--symbols", str(workspace / "nope.yaml")],
    )
    assert result.exit_code == 1


def test_signature_invalid_symbols(workspace):
    """A symbols file that is not a mapping is a usage error."""
    (workspace / "symbols.yaml").write_text("- a\n")
    result = invoke(workspace, "signature", str(workspace / "Demo.mac"), "2", "12")
    assert result.exit_code == 1


def test_tokens_line(workspace):
    result = runner.invoke(app, ["tokens", str(workspace / "Demo.mac"), "--line", "2", "--character", "5"])

    assert result.exit_code == 0
    assert "Fmt" in result.stdout
    assert "COMMAND" in result.stdout
    assert "DELIMITER" in result.stdout


def test_tokens_line_out_of_range(workspace):
    result = runner.invoke(app, ["tokens", str(workspace / "Demo.mac"), "--line", "99"])
    assert result.exit_code == 1


def test_tokens_missing_file(tmp_path):
    result = runner.invoke(app, ["tokens", str(tmp_path / "Nope.mac")])
    assert result.exit_code == 1
