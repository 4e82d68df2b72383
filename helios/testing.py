"""
Helios — In-Memory Request Double
===================================

What:  `MockRequest`, a Request implementation backed by plain dicts.
How:   Shares the parsing helpers of helios.request, so URL params, body
       negotiation and JSON encoding behave exactly like HTTPRequest.
Who:   Handler and middleware unit tests.

Usage:
    req = MockRequest()
    req.set_url_param("id", "3")
    req.set_request_data('{"name": "x"}')
    await create_item(req)
    assert req.status_code == 201
    assert req.get_json_response() == {...}
"""

import json
from typing import Any, Dict, Optional, Tuple

from helios.errors import ERR_UNSUPPORTED_CONTENT_TYPE, Error
from helios.request import (
    Request,
    decode_json_body,
    is_json_content_type,
    parse_uint32,
    serialize_response,
    validate_data,
)
from helios.sessions import encode_session_values


class MockRequest(Request):
    """
    Request double for tests; every attribute is public for arrangement and
    assertions.

    `request_data` may be:
        None          → deserialize_request_data returns ERR_UNSUPPORTED_CONTENT_TYPE
        str / bytes   → treated as the raw JSON body
        anything else → validated directly into the requested shape

    Request header names are stored lowercased, so get_header() is
    case-insensitive. remote_addr defaults to 127.0.0.1.
    """

    def __init__(
        self,
        request_data: Any = None,
        method: str = "GET",
        path: str = "/",
    ):
        self.request_data = request_data
        self.request_header: Dict[str, str] = {}
        self.response_header: Dict[str, str] = {}
        self.session_data: Dict[str, Any] = {}
        self.context_data: Dict[str, Any] = {}
        self.url_param: Dict[str, str] = {}
        self.json_response: bytes = b""
        self.status_code: int = 200
        self.remote_addr = "127.0.0.1"
        self.method = method
        self.path = path
        self.session_saved = False

    # ── Arrangement ───────────────────────────────────────────────────────

    def set_request_data(self, data: Any) -> None:
        self.request_data = data

    def set_url_param(self, key: str, value: str) -> None:
        self.url_param[key] = value

    def set_request_header(self, key: str, value: str) -> None:
        self.request_header[key.lower()] = value

    def get_json_response(self) -> Any:
        """Decoded body passed to the last send_json() call (None before)."""
        if not self.json_response:
            return None
        return json.loads(self.json_response)

    # ── Request ───────────────────────────────────────────────────────────

    def get_url_param(self, key: str) -> str:
        return self.url_param.get(key, "")

    def get_url_param_uint(self, key: str) -> int:
        return parse_uint32(key, self.url_param.get(key))

    def deserialize_request_data(self, shape: Any = None) -> Tuple[Any, Optional[Error]]:
        if self.request_data is None:
            return None, ERR_UNSUPPORTED_CONTENT_TYPE
        if not is_json_content_type(self.get_header("Content-Type")):
            return None, ERR_UNSUPPORTED_CONTENT_TYPE
        if isinstance(self.request_data, (str, bytes)):
            return decode_json_body(self.request_data, shape)
        return validate_data(self.request_data, shape)

    def get_context_data(self, key: str, default: Any = None) -> Any:
        return self.context_data.get(key, default)

    def set_context_data(self, key: str, value: Any) -> None:
        self.context_data[key] = value

    def get_session_data(self, key: str, default: Any = None) -> Any:
        return self.session_data.get(key, default)

    def set_session_data(self, key: str, value: Any) -> None:
        self.session_data[key] = value

    def save_session(self) -> None:
        # Encoded like the cookie store so unencodable values fail here too
        encode_session_values(self.session_data)
        self.session_saved = True

    def get_header(self, key: str) -> str:
        return self.request_header.get(key.lower(), "")

    def set_header(self, key: str, value: str) -> None:
        self.response_header[key] = value

    def client_ip(self) -> str:
        return self.remote_addr

    def send_json(self, output: Any, code: int) -> None:
        self.json_response, self.status_code = serialize_response(output, code)
        self.response_header["Content-Type"] = "application/json"

    def get_method(self) -> str:
        return self.method

    def get_path(self) -> str:
        return self.path

    def get_status_code(self) -> int:
        return self.status_code
