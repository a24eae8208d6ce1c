"""objsig - signature help and parameter hover for ObjectScript."""

try:
    from importlib.metadata import version

    __version__ = version("objsig")
except Exception:
    __version__ = "0.0.0.dev0+local"  # Fallback for development
