"""
Helios — Request Abstraction
==============================

What:  A capability interface hiding the transport request/response pair.
How:   `Request` is an abstract base; `HTTPRequest` is backed by a live
       Starlette request and a buffered Starlette response, while
       `helios.testing.MockRequest` is backed by plain dicts. Handlers only
       ever see `Request`, so the same handler runs against both.
Who:   Handlers and middleware receive a Request; `handle()` builds one per
       inbound request.
When:  Created once per request; context data dies with it, session data is
       loaded at creation and written back only by save_session().

Capabilities:
    URL params      get_url_param, get_url_param_uint
    Body            deserialize_request_data
    Context data    get_context_data, set_context_data
    Session data    get_session_data, set_session_data, save_session
    Headers         get_header (case-insensitive), set_header
    Client          client_ip
    Response        send_json, send_error
"""

import functools
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from fastapi.encoders import jsonable_encoder
from pydantic import TypeAdapter, ValidationError
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response

from helios.errors import (
    ERR_INTERNAL_SERVER_ERROR,
    ERR_JSON_PARSE_FAILED,
    ERR_UNSUPPORTED_CONTENT_TYPE,
    Error,
    FormError,
)
from helios.exceptions import InvalidURLParamError
from helios.sessions import CookieSessionStore, Session

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
MAX_UINT32 = 2**32 - 1

_UINT_PATTERN = re.compile(r"[0-9]+")


# ══════════════════════════════════════════════════════════════════════════
# Shared helpers (used by both Request variants)
# ══════════════════════════════════════════════════════════════════════════

def parse_uint32(key: str, value: Optional[str]) -> int:
    """Parse a decimal unsigned 32-bit integer, raising InvalidURLParamError."""
    if value is None or not _UINT_PATTERN.fullmatch(value):
        raise InvalidURLParamError(key, value)
    number = int(value)
    if number > MAX_UINT32:
        raise InvalidURLParamError(key, value)
    return number


def is_json_content_type(content_type: Optional[str]) -> bool:
    """True for "application/json" (any parameters) or an empty content type."""
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    return media_type in ("", JSON_CONTENT_TYPE)


@functools.lru_cache(maxsize=256)
def _cached_type_adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(Any if shape is None else shape)


def _type_adapter(shape: Any) -> TypeAdapter:
    try:
        hash(shape)
    except TypeError:
        # e.g. Annotated[...] carrying unhashable metadata
        return TypeAdapter(shape)
    return _cached_type_adapter(shape)


def _validation_failure(exc: ValidationError) -> Error:
    if any(error["type"] == "json_invalid" for error in exc.errors()):
        return ERR_JSON_PARSE_FAILED
    return FormError.from_validation_error(exc)


def decode_json_body(body: bytes, shape: Any = None) -> Tuple[Any, Optional[Error]]:
    """
    Decode a JSON body into `shape`.

    Returns:
        (value, None) on success
        (None, ERR_JSON_PARSE_FAILED) when the body is not valid JSON
        (None, FormError) when the JSON does not fit the shape
    """
    try:
        return _type_adapter(shape).validate_json(body), None
    except ValidationError as exc:
        return None, _validation_failure(exc)


def validate_data(data: Any, shape: Any = None) -> Tuple[Any, Optional[Error]]:
    """Validate an already-decoded Python value into `shape`."""
    if shape is None:
        return data, None
    try:
        return _type_adapter(shape).validate_python(data), None
    except ValidationError as exc:
        return None, _validation_failure(exc)


def encode_json(output: Any) -> bytes:
    """Serialize any jsonable value (models, dataclasses, datetimes, ...) compactly."""
    return json.dumps(
        jsonable_encoder(output),
        separators=(",", ":"),
        allow_nan=False,
    ).encode("utf-8")


def split_host_port(address: str) -> str:
    """
    Return the host part of a "host:port" address, or "" when malformed.

    Accepts "[v6]:port" for IPv6; a bare host with no port is malformed.
    """
    address = address.strip()
    if address.startswith("["):
        end = address.find("]")
        if end == -1 or address[end + 1:end + 2] != ":":
            return ""
        return address[1:end]
    host, sep, _ = address.rpartition(":")
    if not sep or ":" in host:
        return ""
    return host


def resolve_client_ip(forwarded_for: str, real_ip: str, remote_addr: str) -> str:
    """X-Forwarded-For (first entry), then X-Real-Ip, then the remote address host."""
    client_ip = (forwarded_for or "").split(",")[0].strip()
    if not client_ip:
        client_ip = (real_ip or "").strip()
    if client_ip:
        return client_ip
    return split_host_port(remote_addr or "")


# ══════════════════════════════════════════════════════════════════════════
# Capability interface
# ══════════════════════════════════════════════════════════════════════════

class Request(ABC):
    """
    Everything a Helios handler may do with the current request.

    Contract:
        - Missing URL params and headers read as ""
        - Missing context/session keys read as None (or the given default)
        - Body problems are RETURNED as Error values, never raised
    """

    @abstractmethod
    def get_url_param(self, key: str) -> str:
        ...

    @abstractmethod
    def get_url_param_uint(self, key: str) -> int:
        """
        Read a URL param as an unsigned 32-bit integer.

        Raises:
            InvalidURLParamError: absent, non-numeric or out of range.
        """
        ...

    @abstractmethod
    def deserialize_request_data(self, shape: Any = None) -> Tuple[Any, Optional[Error]]:
        """
        Decode the request body into `shape` (a pydantic model, dataclass,
        dict, ... or None for raw JSON).

        Returns:
            (value, None) on success, otherwise (None, error) where error is
            ERR_UNSUPPORTED_CONTENT_TYPE, ERR_JSON_PARSE_FAILED or a FormError.
        """
        ...

    @abstractmethod
    def get_context_data(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def set_context_data(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def get_session_data(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def set_session_data(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def save_session(self) -> None:
        """Persist session data. Writes are lost unless this is called before responding."""
        ...

    @abstractmethod
    def client_ip(self) -> str:
        ...

    @abstractmethod
    def get_header(self, key: str) -> str:
        ...

    @abstractmethod
    def set_header(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def send_json(self, output: Any, code: int) -> None:
        """
        Send `output` as the JSON response with status `code`.

        When `output` cannot be serialized, the exception is logged and
        ERR_INTERNAL_SERVER_ERROR is sent with status 500 instead.
        """
        ...

    @abstractmethod
    def get_method(self) -> str:
        ...

    @abstractmethod
    def get_path(self) -> str:
        ...

    @abstractmethod
    def get_status_code(self) -> int:
        """Status of the response sent so far (200 before send_json)."""
        ...

    def send_error(self, error: Error) -> None:
        """Send an Error value as the response."""
        self.send_json(error.get_message(), error.get_status_code())


# Handler receives the Helios-wrapped request; all effects go through it
Handler = Callable[[Request], Awaitable[None]]


def serialize_response(output: Any, code: int) -> Tuple[bytes, int]:
    """Encode a response body, falling back to the internal-server-error body."""
    try:
        return encode_json(output), code
    except (TypeError, ValueError):
        logger.exception("Failed to serialize JSON response (status %d)", code)
        return encode_json(ERR_INTERNAL_SERVER_ERROR.get_message()), ERR_INTERNAL_SERVER_ERROR.get_status_code()


# ══════════════════════════════════════════════════════════════════════════
# Live variant
# ══════════════════════════════════════════════════════════════════════════

class HTTPRequest(Request):
    """
    Request backed by a live Starlette request.

    Attributes:
        request:        The Starlette request
        response:       Buffered Starlette response returned by the endpoint
        body:           Raw request body (read up front by from_starlette)
        session:        Session loaded from the cookie store
        session_store:  Store used by save_session(); None disables persistence
        context:        Request-scoped key-value data
        url_params:     Query string params overlaid with path params
    """

    def __init__(
        self,
        request: StarletteRequest,
        body: bytes = b"",
        session: Optional[Session] = None,
        session_store: Optional[CookieSessionStore] = None,
        context: Optional[Dict[str, Any]] = None,
        url_params: Optional[Dict[str, str]] = None,
    ):
        self.request = request
        self.response = Response()
        self.body = body
        self.session_store = session_store
        if session is None:
            session = Session(name=session_store.cookie_name if session_store else "")
        self.session = session
        self.context = {} if context is None else context
        if url_params is None:
            url_params = dict(request.query_params)
            url_params.update({key: str(value) for key, value in request.path_params.items()})
        self.url_params = url_params

    @classmethod
    async def from_starlette(
        cls,
        request: StarletteRequest,
        session_store: Optional[CookieSessionStore] = None,
    ) -> "HTTPRequest":
        """Wrap a Starlette request: read a JSON body, load the session."""
        body = b""
        if is_json_content_type(request.headers.get("content-type")):
            body = await request.body()
        session = session_store.load(request.cookies) if session_store else None
        return cls(request, body=body, session=session, session_store=session_store)

    # ── URL params ────────────────────────────────────────────────────────

    def get_url_param(self, key: str) -> str:
        return self.url_params.get(key, "")

    def get_url_param_uint(self, key: str) -> int:
        return parse_uint32(key, self.url_params.get(key))

    # ── Body ──────────────────────────────────────────────────────────────

    def deserialize_request_data(self, shape: Any = None) -> Tuple[Any, Optional[Error]]:
        if not is_json_content_type(self.request.headers.get("content-type")):
            return None, ERR_UNSUPPORTED_CONTENT_TYPE
        return decode_json_body(self.body, shape)

    # ── Context & session ─────────────────────────────────────────────────

    def get_context_data(self, key: str, default: Any = None) -> Any:
        return self.context.get(key, default)

    def set_context_data(self, key: str, value: Any) -> None:
        self.context[key] = value

    def get_session_data(self, key: str, default: Any = None) -> Any:
        return self.session.values.get(key, default)

    def set_session_data(self, key: str, value: Any) -> None:
        self.session.values[key] = value

    def save_session(self) -> None:
        if self.session_store is None:
            logger.debug("No session store configured; session for %s not saved", self.get_path())
            return
        self.response.headers.append("set-cookie", self.session_store.dump(self.session))

    # ── Headers & client ──────────────────────────────────────────────────

    def get_header(self, key: str) -> str:
        return self.request.headers.get(key, "")

    def set_header(self, key: str, value: str) -> None:
        self.response.headers[key] = value

    def client_ip(self) -> str:
        return resolve_client_ip(
            self.get_header("X-Forwarded-For"),
            self.get_header("X-Real-Ip"),
            self.remote_addr,
        )

    @property
    def remote_addr(self) -> str:
        """Transport peer as "host:port" ("[v6]:port" for IPv6, bare host when no port)."""
        client = self.request.client
        if client is None or not client.host:
            return ""
        host = f"[{client.host}]" if ":" in client.host else client.host
        if client.port is None:
            return client.host
        return f"{host}:{client.port}"

    # ── Response ──────────────────────────────────────────────────────────

    def send_json(self, output: Any, code: int) -> None:
        payload, code = serialize_response(output, code)
        self.response.headers["Content-Type"] = JSON_CONTENT_TYPE
        self.response.status_code = code
        self.response.body = payload
        self.response.headers["Content-Length"] = str(len(payload))

    def get_method(self) -> str:
        return self.request.method

    def get_path(self) -> str:
        return self.request.scope.get("path", "")

    def get_status_code(self) -> int:
        return self.response.status_code


def handle(
    f: Handler,
    session_store: Optional[CookieSessionStore] = None,
    get_session_store: Optional[Callable[[], Optional[CookieSessionStore]]] = None,
) -> Callable[[StarletteRequest], Awaitable[Response]]:
    """
    Turn a Helios handler into a Starlette endpoint, without middleware.

    Args:
        f:                  Handler to run for every request
        session_store:      Fixed store for session cookies
        get_session_store:  Called per request instead of using `session_store`,
                            for stores created after the route is built

    Usage:
        app.add_route("/items/{id}", handle(get_item), methods=["GET"])
    """

    async def endpoint(request: StarletteRequest) -> Response:
        store = get_session_store() if get_session_store is not None else session_store
        req = await HTTPRequest.from_starlette(request, store)
        await f(req)
        return req.response

    return endpoint
