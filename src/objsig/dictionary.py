"""SQLite-backed offline class dictionary.

SymbolDictionary answers the same queries as the server (see
objsig.services.SymbolService) from a local database, which can be filled
from a YAML export. This lets signature help work without a live namespace.
"""

import logging
import re
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path

import yaml

from objsig.errors import TransportFault
from objsig.models import STUB_KINDS, MacroContext, MethodRow, StubReference
from objsig.params import split_formal_spec
from objsig.services import SymbolService

logger = logging.getLogger(__name__)

DATABASE_NAME = "symbols.db"


def _arguments(arglist: str) -> list[str]:
    return [arglist[s:e] for s, e in split_formal_spec(arglist)]


def expand_template(template: list[str], formal: str, arguments: str) -> list[str]:
    """Substitute the call's arguments for the macro's formal argument names.

    Args:
        template: Expansion lines written in terms of the formal names
        formal: Formal argument list, e.g. "(x,y)"
        arguments: Arguments to substitute, e.g. "(%%%%%x@@@@@,y)"

    Returns:
        Expanded lines
    """
    names = [name.strip() for name in _arguments(formal)]
    values = _arguments(arguments) if arguments else []
    mapping = {name: values[i] for i, name in enumerate(names) if name and i < len(values)}
    if not mapping:
        return list(template)
    pattern = re.compile(
        r"(?<![\w%])(" + "|".join(re.escape(n) for n in sorted(mapping, key=len, reverse=True)) + r")(?![\w%])"
    )
    return [pattern.sub(lambda m: mapping[m.group(1)], line) for line in template]


class SymbolDictionary(SymbolService):
    """SQLite database of compiled methods, generated stub methods and macros.

    The database uses three tables:
    - methods: Compiled methods keyed by (parent, name)
    - stub_methods: Methods generated from indices, queries, properties and constraints
    - macros: Macro argument lists and expansion templates

    Query failures are logged and surface as TransportFault, the same way a
    failing server query does.
    """

    def __init__(self, db_dir: Path):
        """Initialize the dictionary database.

        Args:
            db_dir: Directory to store the database (typically .objsig-cache)
        """
        self.db_dir = db_dir
        self.db_dir.mkdir(parents=True, exist_ok=True)
        self.db_path = self.db_dir / DATABASE_NAME
        self.conn: sqlite3.Connection | None = None
        self._in_transaction = False
        self._lock = threading.RLock()
        self._open()

    def _open(self) -> None:
        """Open database connection and initialize schema.

        Raises:
            sqlite3.Error: If database cannot be opened or initialized.
        """
        try:
            self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False, timeout=10.0)
            self.conn.execute("PRAGMA journal_mode = WAL")
            self.conn.execute("PRAGMA busy_timeout = 10000")
            self.create_tables()
        except sqlite3.Error as e:
            logger.error(f"Failed to open symbol dictionary at {self.db_path}: {e}")
            if self.conn:
                self.conn.close()
                self.conn = None
            raise

    def create_tables(self) -> None:
        """Create database schema if it doesn't exist."""
        if self.conn is None:
            raise RuntimeError("Database connection not initialized")

        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS methods (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                parent TEXT NOT NULL,
                name TEXT NOT NULL,
                formal_spec TEXT NOT NULL DEFAULT '',
                return_type TEXT NOT NULL DEFAULT '',
                description TEXT NOT NULL DEFAULT '',
                stub TEXT NOT NULL DEFAULT '',
                origin TEXT NOT NULL DEFAULT '',
                UNIQUE (parent, name)
            )
        """)

        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS stub_methods (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                kind TEXT NOT NULL,
                parent_class TEXT NOT NULL,
                parent_member TEXT NOT NULL,
                name TEXT NOT NULL,
                formal_spec TEXT NOT NULL DEFAULT '',
                return_type TEXT NOT NULL DEFAULT '',
                description TEXT NOT NULL DEFAULT '',
                UNIQUE (kind, parent_class, parent_member, name)
            )
        """)

        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS macros (
                name TEXT PRIMARY KEY,
                signature TEXT NOT NULL DEFAULT '',
                expansion TEXT NOT NULL DEFAULT ''
            )
        """)

        self.conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> "SymbolDictionary":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @contextmanager
    def transaction(self):
        """Group several writes into one transaction, rolled back on error.

        Raises:
            RuntimeError: If database connection not initialized.
            sqlite3.Error: If transaction fails.
        """
        if self.conn is None:
            raise RuntimeError("Database connection not initialized")

        with self._lock:
            was_in_transaction = self._in_transaction
            self._in_transaction = True
            try:
                yield
                if not was_in_transaction:
                    self.conn.commit()
            except Exception as e:
                logger.error(f"Transaction failed, rolling back: {e}")
                self.conn.rollback()
                raise
            finally:
                self._in_transaction = was_in_transaction

    def _write(self, sql: str, parameters: tuple, what: str) -> None:
        if self.conn is None:
            raise RuntimeError("Database connection not initialized")

        with self._lock:
            try:
                self.conn.execute(sql, parameters)
                if not self._in_transaction:
                    self.conn.commit()
            except sqlite3.Error as e:
                logger.error(f"Failed to store {what}: {e}")
                if not self._in_transaction:
                    self.conn.rollback()
                raise

    def _read(self, sql: str, parameters: tuple, what: str) -> list[tuple]:
        if self.conn is None:
            raise TransportFault("Symbol dictionary is closed")

        with self._lock:
            try:
                return self.conn.execute(sql, parameters).fetchall()
            except sqlite3.Error as e:
                logger.error(f"Failed to read {what}: {e}")
                raise TransportFault(f"Symbol dictionary query for {what} failed: {e}") from e

    def insert_method(self, parent: str, method: MethodRow) -> None:
        """Insert or replace a compiled method of class parent.

        Raises:
            RuntimeError: If database connection not initialized.
            sqlite3.Error: If database operation fails.
        """
        self._write(
            """
            INSERT OR REPLACE INTO methods (parent, name, formal_spec, return_type, description, stub, origin)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (parent, method.name, method.formal_spec, method.return_type,
             method.description, method.stub, method.origin or parent),
            f"method {parent}:{method.name}",
        )

    def insert_stub_method(self, kind: str, parent_class: str, parent_member: str, method: MethodRow) -> None:
        """Insert or replace a method generated by member parent_member of parent_class.

        Raises:
            ValueError: If kind is not a known stub kind.
            sqlite3.Error: If database operation fails.
        """
        if kind not in STUB_KINDS:
            raise ValueError(f"Unknown stub kind: {kind}")
        self._write(
            """
            INSERT OR REPLACE INTO stub_methods
                (kind, parent_class, parent_member, name, formal_spec, return_type, description)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (kind, parent_class, parent_member, method.name, method.formal_spec,
             method.return_type, method.description),
            f"{STUB_KINDS[kind]} method {parent_class}:{parent_member}.{method.name}",
        )

    def insert_macro(self, name: str, signature: str, expansion: list[str]) -> None:
        """Insert or replace a macro definition.

        Raises:
            sqlite3.Error: If database operation fails.
        """
        self._write(
            "INSERT OR REPLACE INTO macros (name, signature, expansion) VALUES (?, ?, ?)",
            (name, signature, "\n".join(expansion)),
            f"macro {name}",
        )

    def clear(self) -> None:
        with self.transaction():
            for table in ("methods", "stub_methods", "macros"):
                self.conn.execute(f"DELETE FROM {table}")

    def load_yaml(self, path: Path) -> None:
        """Replace the dictionary's content with the definitions in a YAML file.

        Expected YAML structure:

        ```yaml
        methods:
          - parent: Sample.Person
            name: Greet
            formal_spec: 'name:%String,&count:%Integer=1'
            return_type: '%Status'
            description: 'Say hello.'
        stub_methods:
          - kind: i
            parent_class: Sample.Person
            parent_member: NameIdx
            name: Exists
            formal_spec: 'val:%String'
            return_type: '%Boolean'
        macros:
          - name: Trace
            signature: '(%msg,%level)'
            expansion: ['Do ##class(Log).Write(%msg,%level)']
        ```

        Raises:
            OSError: If the file cannot be read.
            yaml.YAMLError: If the file is not valid YAML.
            ValueError: If the file does not have the structure above.
        """
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path} does not contain a mapping")

        with self.transaction():
            self.clear()
            for item in data.get("methods") or []:
                self.insert_method(item["parent"], MethodRow(
                    name=item["name"],
                    formal_spec=item.get("formal_spec", ""),
                    return_type=item.get("return_type", ""),
                    description=item.get("description", ""),
                    stub=item.get("stub", ""),
                    origin=item.get("origin", ""),
                ))
            for item in data.get("stub_methods") or []:
                self.insert_stub_method(item["kind"], item["parent_class"], item["parent_member"], MethodRow(
                    name=item["name"],
                    formal_spec=item.get("formal_spec", ""),
                    return_type=item.get("return_type", ""),
                    description=item.get("description", ""),
                ))
            for item in data.get("macros") or []:
                self.insert_macro(item["name"], item.get("signature", ""), list(item.get("expansion") or []))

    def get_macro_signature(self, context: MacroContext) -> str:
        rows = self._read("SELECT signature FROM macros WHERE name = ?", (context.macroname,), f"macro {context.macroname}")
        return rows[0][0] if rows else ""

    def get_macro_expansion(self, context: MacroContext) -> list[str]:
        rows = self._read(
            "SELECT signature, expansion FROM macros WHERE name = ?",
            (context.macroname,),
            f"macro {context.macroname}",
        )
        if not rows:
            return []
        signature, expansion = rows[0]
        template = expansion.split("\n") if expansion else []
        return expand_template(template, signature, context.arguments)

    def get_methods(self, parent: str, names: list[str]) -> list[MethodRow]:
        if not names:
            return []
        placeholders = ",".join("?" * len(names))
        rows = self._read(
            f"""
            SELECT name, formal_spec, return_type, description, stub, origin
            FROM methods WHERE parent = ? AND name IN ({placeholders})
            ORDER BY id
            """,
            (parent, *names),
            f"methods of {parent}",
        )
        return [MethodRow(*row) for row in rows]

    def get_stub_method(self, stub: StubReference, parent: str) -> MethodRow | None:
        rows = self._read(
            """
            SELECT name, formal_spec, return_type, description
            FROM stub_methods
            WHERE kind = ? AND parent_class = ? AND parent_member = ? AND name = ?
            """,
            (stub.kind, parent, stub.member, stub.method),
            f"stub {stub.member}.{stub.method}",
        )
        if not rows:
            return None
        name, formal_spec, return_type, description = rows[0]
        return MethodRow(name=name, formal_spec=formal_spec, return_type=return_type, description=description)
