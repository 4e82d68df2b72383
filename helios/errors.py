"""
Helios — Structured Error Taxonomy
====================================

What:  Value types describing API-level and form-validation errors.
How:   Every error implements `Error`: get_message() returns the JSON body,
       get_status_code() returns the HTTP status.
Who:   Returned by Request.deserialize_request_data() and by application
       handlers; sent with Request.send_error() / Request.send_json().

These are NOT exceptions. Fallible operations return them as ordinary values
and the handler decides whether to send them as the response.

Wire format:
    APIError   → {"code": "...", "message": "..."}
    FormError  → {"code": "form_error", "message": {"<field>": [...], "_error": [...]}}

Error Catalogue:
    ERR_INTERNAL_SERVER_ERROR     → 500 internal_server_error
    ERR_UNSUPPORTED_CONTENT_TYPE  → 415 unsupported_content_type
    ERR_JSON_PARSE_FAILED         → 400 malformed_json
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

NON_FIELD_ERROR_KEY = "_error"
DEFAULT_FORM_ERROR_CODE = "form_error"


class Error(ABC):
    """Contract shared by every error value sent back to API clients."""

    @abstractmethod
    def get_message(self) -> Dict[str, Any]:
        """Return the JSON-serializable response body."""
        ...

    @abstractmethod
    def get_status_code(self) -> int:
        """Return the HTTP status code the error maps to."""
        ...


@dataclass(frozen=True)
class APIError(Error):
    """
    A flat, immutable API error.

    Attributes:
        status_code: HTTP status chosen at construction
        code:        Machine-readable code (snake_case)
        message:     Human-readable description, safe to show to clients
    """

    status_code: int
    code: str
    message: str

    def get_message(self) -> Dict[str, str]:
        return {"code": self.code, "message": self.message}

    def get_status_code(self) -> int:
        return self.status_code


# ── Well-known errors ─────────────────────────────────────────────────────

ERR_INTERNAL_SERVER_ERROR = APIError(
    status_code=500,
    code="internal_server_error",
    message="Error occured while processing the request",
)

ERR_UNSUPPORTED_CONTENT_TYPE = APIError(
    status_code=415,
    code="unsupported_content_type",
    message="Currently, we are accepting application/json only",
)

ERR_JSON_PARSE_FAILED = APIError(
    status_code=400,
    code="malformed_json",
    message="Failed to parse the request body as JSON",
)


# ══════════════════════════════════════════════════════════════════════════
# Field errors
# ══════════════════════════════════════════════════════════════════════════
#
# A form's field errors form a tree:
#   AtomicFieldError  - messages for a scalar field     → ["msg", ...]
#   ArrayFieldError   - one field error per array item  → [[...], {...}]
#   NestedFieldError  - field name → field error        → {"field": [...]}


class FieldError(ABC):
    @abstractmethod
    def get_message(self) -> Any:
        ...

    @abstractmethod
    def is_error(self) -> bool:
        ...


class AtomicFieldError(list, FieldError):
    """Ordered list of messages for a single field."""

    def get_message(self) -> List[str]:
        return list(self)

    def is_error(self) -> bool:
        return len(self) > 0


class ArrayFieldError(list, FieldError):
    """Field errors of each item of an array field, in item order."""

    def get_message(self) -> List[Any]:
        return [item.get_message() for item in self]

    def is_error(self) -> bool:
        return any(item.is_error() for item in self)


class NestedFieldError(dict, FieldError):
    """Field errors of an object, keyed by field name."""

    def get_message(self) -> Dict[str, Any]:
        return {name: error.get_message() for name, error in self.items()}

    def is_error(self) -> bool:
        return any(error.is_error() for error in self.values())


@dataclass
class FormError(Error):
    """
    Accumulator for form-validation errors.

    Created empty at the start of validation, filled with add_field_error() /
    add_non_field_error(), then sent once. A field declared with no messages
    still serializes as an empty list.

    Attributes:
        code:             Custom machine-readable code; "form_error" when unset
        field_error:      Field name → field error, in insertion order
        non_field_error:  Messages about the request as a whole ("_error")
    """

    code: Optional[str] = None
    field_error: NestedFieldError = field(default_factory=NestedFieldError)
    non_field_error: List[str] = field(default_factory=list)

    def add_field_error(self, field_name: str, message: str) -> None:
        """Append a message to a scalar field, declaring the field on first use."""
        if field_name not in self.field_error:
            self.field_error[field_name] = AtomicFieldError()
        self.field_error[field_name].append(message)

    def add_non_field_error(self, message: str) -> None:
        self.non_field_error.append(message)

    def is_error(self) -> bool:
        return bool(self.non_field_error) or self.field_error.is_error()

    def get_message(self) -> Dict[str, Any]:
        message = self.field_error.get_message()
        message[NON_FIELD_ERROR_KEY] = list(self.non_field_error)
        return {
            "code": self.code or DEFAULT_FORM_ERROR_CODE,
            "message": message,
        }

    def get_status_code(self) -> int:
        return 400

    @classmethod
    def from_validation_error(
        cls, exc: ValidationError, code: Optional[str] = None
    ) -> "FormError":
        """
        Build a FormError from a pydantic ValidationError.

        Each error is filed under its dotted location ("items.0.name");
        errors without a location become non-field errors.
        """
        form_error = cls(code=code)
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()))
            if location:
                form_error.add_field_error(location, error["msg"])
            else:
                form_error.add_non_field_error(error["msg"])
        return form_error
