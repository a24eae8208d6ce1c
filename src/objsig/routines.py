"""Routine sources backed by files in the local workspace."""

import logging
from pathlib import Path

from objsig.document import path_to_uri, uri_to_path
from objsig.models import RoutineIndexEntry
from objsig.services import RoutineSource

logger = logging.getLogger(__name__)

ROUTINE_SUFFIXES = (".mac", ".int")


class WorkspaceRoutineSource(RoutineSource):
    """Finds routines as Name.mac / Name.int files anywhere under a workspace root."""

    def __init__(self, root: Path):
        self.root = root

    def _find(self, name: str) -> dict[str, Path]:
        found = {}
        for suffix in ROUTINE_SUFFIXES:
            for path in sorted(self.root.rglob(f"{name}{suffix}")):
                relative = path.relative_to(self.root)
                if any(part.startswith(".") for part in relative.parts):
                    continue
                found.setdefault(suffix, path)
        return found

    def index_routine(self, name: str) -> RoutineIndexEntry | None:
        found = self._find(name)
        if not found:
            return RoutineIndexEntry(name=f"{name}.int", status=f"Routine {name} not found in {self.root}")
        others = [path.name for suffix, path in found.items() if suffix != ".int"]
        return RoutineIndexEntry(name=f"{name}.int", status="", others=others)

    def resolve_routine_uri(self, document_uri: str, name: str, extension: str) -> str:
        found = self._find(name)
        path = found.get(extension) or next(iter(found.values()), None)
        return path_to_uri(path) if path is not None else ""

    def fetch_lines(self, uri: str) -> list[str]:
        path = uri_to_path(uri)
        if path is None or not path.is_file():
            return []
        try:
            return path.read_text().splitlines()
        except OSError as e:
            logger.warning(f"Could not read routine {path}: {e}")
            return []
