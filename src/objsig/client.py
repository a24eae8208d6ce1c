"""REST client for the server's Atelier API.

AtelierClient answers the SymbolService queries against a live namespace, and
ServerRoutineSource reads routine source through it. The SQL text of the
dictionary queries is confined to this module.
"""

import logging
from urllib.parse import quote, urlparse, unquote

import requests

from objsig.config import ServerSpec
from objsig.errors import MalformedResponse, TransportFault
from objsig.models import MacroContext, MethodRow, RoutineIndexEntry, StubReference
from objsig.services import RoutineSource, SymbolService

logger = logging.getLogger(__name__)

ROUTINE_URI_SCHEME = "objectscript"

_METHOD_COLUMNS = "Name, FormalSpec, ReturnType, Description, Stub, Origin"
_STUB_TABLES = {
    "i": "%Dictionary.CompiledIndexMethod",
    "q": "%Dictionary.CompiledQueryMethod",
    "a": "%Dictionary.CompiledPropertyMethod",
    "n": "%Dictionary.CompiledConstraintMethod",
}


def methods_query(names: list[str]) -> str:
    """SQL selecting the compiled methods of a class with any of the given names."""
    condition = " OR ".join("Name = ?" for _ in names)
    if len(names) > 1:
        condition = f"({condition})"
    return f"SELECT {_METHOD_COLUMNS} FROM %Dictionary.CompiledMethod WHERE Parent = ? AND {condition}"


def stub_query(kind: str) -> str:
    """SQL selecting a generated method from the subtable for a stub kind."""
    return (
        f"SELECT Name, Description, FormalSpec, ReturnType FROM {_STUB_TABLES[kind]} "
        "WHERE Name = ? AND parent->Parent = ? AND parent->Name = ?"
    )


def _row(data: dict) -> MethodRow:
    return MethodRow(
        name=data.get("Name") or "",
        formal_spec=data.get("FormalSpec") or "",
        return_type=data.get("ReturnType") or "",
        description=data.get("Description") or "",
        stub=data.get("Stub") or "",
        origin=data.get("Origin") or "",
    )


class AtelierClient(SymbolService):
    """Queries a namespace's class dictionary and macros over HTTP."""

    def __init__(self, server: ServerSpec, session: requests.Session | None = None):
        self.server = server
        self.session = session or requests.Session()
        if server.username:
            self.session.auth = (server.username, server.password)

    def url(self, api_version: int, path: str) -> str:
        namespace = quote(self.server.namespace, safe="")
        return f"{self.server.base_url}/api/atelier/v{api_version}/{namespace}{path}"

    def request(self, method: str, api_version: int, path: str, data=None):
        """Issue a request and return result.content of the response envelope.

        Raises:
            TransportFault: If the request fails or the server reports errors.
            MalformedResponse: If the body is not a well-formed envelope.
        """
        url = self.url(api_version, path)
        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(method, url, json=data, timeout=self.server.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise TransportFault(f"{method} {path} failed: {e}") from e
        try:
            envelope = response.json()
        except ValueError as e:
            raise MalformedResponse(f"{method} {path} returned a non-JSON body") from e

        if not isinstance(envelope, dict):
            raise MalformedResponse(f"{method} {path} returned an unexpected envelope")
        errors = (envelope.get("status") or {}).get("errors") or []
        if errors:
            messages = "; ".join(str(e.get("error", e)) if isinstance(e, dict) else str(e) for e in errors)
            raise TransportFault(f"{method} {path}: {messages}")
        result = envelope.get("result")
        if not isinstance(result, dict) or "content" not in result:
            raise MalformedResponse(f"{method} {path} response has no result content")
        return result["content"]

    def query(self, sql: str, parameters: list[str]) -> list[dict]:
        content = self.request("POST", 1, "/action/query", {"query": sql, "parameters": parameters})
        if not isinstance(content, list):
            raise MalformedResponse("Query response content is not a list")
        return [row for row in content if isinstance(row, dict)]

    def get_macro_signature(self, context: MacroContext) -> str:
        content = self.request("POST", 2, "/action/getmacrosignature", context.with_arguments("").payload())
        if not isinstance(content, dict):
            raise MalformedResponse("Macro signature response content is not an object")
        return content.get("signature") or ""

    def get_macro_expansion(self, context: MacroContext) -> list[str]:
        content = self.request("POST", 2, "/action/getmacroexpansion", context.payload())
        if not isinstance(content, dict):
            raise MalformedResponse("Macro expansion response content is not an object")
        expansion = content.get("expansion") or []
        return [str(line) for line in expansion]

    def get_methods(self, parent: str, names: list[str]) -> list[MethodRow]:
        if not names:
            return []
        return [_row(r) for r in self.query(methods_query(names), [parent, *names])]

    def get_stub_method(self, stub: StubReference, parent: str) -> MethodRow | None:
        rows = self.query(stub_query(stub.kind), [stub.method, parent, stub.member])
        return _row(rows[0]) if rows else None

    def index_routine(self, name: str) -> RoutineIndexEntry | None:
        content = self.request("POST", 1, "/action/index", [f"{name}.int"])
        if not isinstance(content, list) or not content or not isinstance(content[0], dict):
            return None
        entry = content[0]
        return RoutineIndexEntry(
            name=entry.get("name") or f"{name}.int",
            status=entry.get("status") or "",
            others=list(entry.get("others") or []),
        )

    def get_document(self, docname: str) -> list[str]:
        content = self.request("GET", 1, f"/doc/{quote(docname)}")
        if not isinstance(content, dict):
            raise MalformedResponse(f"Document {docname} response content is not an object")
        lines = content.get("content") or []
        return [str(line) for line in lines]


class ServerRoutineSource(RoutineSource):
    """Reads routines from the server. URIs look like objectscript://host/NS/Name.mac."""

    def __init__(self, client: AtelierClient):
        self.client = client

    def index_routine(self, name: str) -> RoutineIndexEntry | None:
        return self.client.index_routine(name)

    def resolve_routine_uri(self, document_uri: str, name: str, extension: str) -> str:
        server = self.client.server
        return f"{ROUTINE_URI_SCHEME}://{server.host}/{quote(server.namespace)}/{quote(name + extension)}"

    def fetch_lines(self, uri: str) -> list[str]:
        parsed = urlparse(uri)
        if parsed.scheme != ROUTINE_URI_SCHEME:
            return []
        docname = unquote(parsed.path.rsplit("/", 1)[-1])
        return self.client.get_document(docname)
