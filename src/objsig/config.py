"""Configuration management for the objsig engine."""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILE_NAME = ".objsig"


@dataclass
class ServerSpec:
    """Connection details of the server that hosts the class dictionary.

    Attributes:
        scheme: "http" or "https".
        host: Server host name.
        port: Web server port.
        path_prefix: Prefix of the web application path (e.g. "/iris").
        namespace: Namespace whose dictionary is queried.
        username: User for basic authentication ("" for none).
        password: Password for basic authentication.
        timeout: Request timeout in seconds.
    """
    scheme: str = "http"
    host: str = "localhost"
    port: int = 52773
    path_prefix: str = ""
    namespace: str = "USER"
    username: str = ""
    password: str = ""
    timeout: float = 10.0

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}{self.path_prefix.rstrip('/')}"


@dataclass
class SignatureHelpSettings:
    """Signature help behavior.

    Attributes:
        documentation: Show member descriptions alongside method signatures.
    """
    documentation: bool = True


@dataclass
class HoverSettings:
    """Hover behavior.

    Attributes:
        show_header: Prefix hover content with a code block holding the signature.
        bold_parameter: Render the active parameter bold in hover content.
    """
    show_header: bool = False
    bold_parameter: bool = False


@dataclass
class EngineConfig:
    """Top-level configuration.

    Attributes:
        server: Server connection details.
        signature_help: Signature help behavior.
        hover: Hover behavior.
        locale: Language of generated documentation text ("en" or "pt").
    """
    server: ServerSpec = field(default_factory=ServerSpec)
    signature_help: SignatureHelpSettings = field(default_factory=SignatureHelpSettings)
    hover: HoverSettings = field(default_factory=HoverSettings)
    locale: str = "en"


def _section(cls, data: Any):
    """Build dataclass cls from a mapping, keeping defaults for missing keys."""
    if not isinstance(data, dict):
        return cls()
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})


def find_workspace_root(start: Path | None = None) -> Path:
    """Nearest directory at or above start holding a .objsig file (start itself if none)."""
    if start is None:
        start = Path.cwd()
    start = start.resolve()
    if start.is_file():
        start = start.parent
    for directory in (start, *start.parents):
        if (directory / CONFIG_FILE_NAME).exists():
            return directory
    return start


def load_config(root: Path | None = None) -> EngineConfig:
    """Load engine configuration from the .objsig file in a workspace root.

    Args:
        root: Workspace root. If None, uses current directory.

    Returns:
        EngineConfig with loaded or default values.

    Notes:
        If .objsig doesn't exist or can't be parsed, returns default config.
        Expected YAML structure:

        ```yaml
        server:
          host: localhost
          port: 52773
          namespace: USER
          username: _SYSTEM
          password: SYS
        signature_help:
          documentation: true
        hover:
          show_header: false
          bold_parameter: false
        locale: en
        ```
    """
    if root is None:
        root = Path.cwd()

    config_path = root / CONFIG_FILE_NAME

    if not config_path.exists():
        return EngineConfig()

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            return EngineConfig()

        locale = data.get("locale", EngineConfig.locale)
        return EngineConfig(
            server=_section(ServerSpec, data.get("server")),
            signature_help=_section(SignatureHelpSettings, data.get("signature_help")),
            hover=_section(HoverSettings, data.get("hover")),
            locale=locale if isinstance(locale, str) else EngineConfig.locale,
        )
    except (yaml.YAMLError, OSError, KeyError, TypeError, ValueError):
        # Return default config on any parsing errors
        return EngineConfig()
