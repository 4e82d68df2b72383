"""
Helios — Signed Cookie Sessions
=================================

What:  Client-side session storage in a signed cookie.
How:   Session values are JSON-encoded, base64'd and signed with an
       itsdangerous TimestampSigner (the same scheme Starlette's
       SessionMiddleware uses). Tampered or expired cookies load as an
       empty session.
Who:   The Helios application handle owns one CookieSessionStore; every
       HTTPRequest loads its Session from it on creation.
When:  Loaded once per request; written back ONLY when the handler calls
       Request.save_session().
"""

import json
import logging
from base64 import b64decode, b64encode
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import itsdangerous
from fastapi.encoders import jsonable_encoder
from itsdangerous.exc import BadSignature

logger = logging.getLogger(__name__)


def encode_session_values(values: Dict[str, Any]) -> bytes:
    """JSON-encode session values; datetimes, UUIDs, models etc. become JSON primitives."""
    return json.dumps(jsonable_encoder(values)).encode("utf-8")


@dataclass
class Session:
    """
    In-memory view of one client's session.

    Attributes:
        name:    Cookie name the session is stored under
        values:  Session data; string keys, any value jsonable_encoder accepts
        new:     True when no valid cookie was presented
    """

    name: str
    values: Dict[str, Any] = field(default_factory=dict)
    new: bool = True


class CookieSessionStore:
    """
    Loads and dumps sessions to a signed cookie.

    Args:
        secret_key:   Signing key (HELIOS_SECRET)
        cookie_name:  Session cookie name (SESSION_NAME)
        max_age:      Cookie and signature lifetime in seconds; None for a browser-session cookie
        path:         Cookie path
        same_site:    SameSite attribute (lax, strict, none)
        https_only:   Add the Secure attribute
    """

    def __init__(
        self,
        secret_key: str,
        cookie_name: str,
        max_age: Optional[int] = 14 * 24 * 60 * 60,
        path: str = "/",
        same_site: str = "lax",
        https_only: bool = False,
    ):
        self.signer = itsdangerous.TimestampSigner(str(secret_key))
        self.cookie_name = cookie_name
        self.max_age = max_age
        self.path = path
        self.security_flags = "httponly; samesite=" + same_site
        if https_only:
            self.security_flags += "; secure"

    def load(self, cookies: Mapping[str, str]) -> Session:
        """Read the session out of the request cookies."""
        raw = cookies.get(self.cookie_name)
        if not raw:
            return Session(name=self.cookie_name)

        try:
            data = self.signer.unsign(raw.encode("utf-8"), max_age=self.max_age)
            values = json.loads(b64decode(data))
        except (BadSignature, ValueError) as e:
            logger.debug("Discarding invalid session cookie '%s': %s", self.cookie_name, e)
            return Session(name=self.cookie_name)

        if not isinstance(values, dict):
            return Session(name=self.cookie_name)
        return Session(name=self.cookie_name, values=values, new=False)

    def dump(self, session: Session) -> str:
        """Return the Set-Cookie header value persisting `session`."""
        data = b64encode(encode_session_values(session.values))
        data = self.signer.sign(data)
        max_age = f"Max-Age={self.max_age}; " if self.max_age else ""
        return "{name}={data}; path={path}; {max_age}{flags}".format(
            name=self.cookie_name,
            data=data.decode("utf-8"),
            path=self.path,
            max_age=max_age,
            flags=self.security_flags,
        )
