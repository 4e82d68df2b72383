"""
Helios — Test Configuration (conftest.py)
===========================================

What:  Shared pytest fixtures and test models for the whole suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixtures:
    helios_app:      Fresh Helios handle per test, closed afterwards
    mock_request:    Empty MockRequest
    SampleRequest:   Request-body shape used by deserialization tests

Helpers:
    make_starlette_request(): Starlette request built from a bare ASGI scope
"""

import os
from typing import Dict, Optional, Tuple

import pytest
import pytest_asyncio
from pydantic import BaseModel
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from starlette.requests import Request as StarletteRequest

from helios.app import Helios
from helios.config import Settings
from helios.database import Base
from helios.testing import MockRequest


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Never touch a real store or a developer's secret from the test suite
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"


# ══════════════════════════════════════════════════════════════════════════
# Test Models & Shapes
# ══════════════════════════════════════════════════════════════════════════

class ModelA(Base):
    __tablename__ = "abc"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    data_x: Mapped[str] = mapped_column(String(50), default="")
    data_y: Mapped[str] = mapped_column(String(50), default="")


class ModelB(Base):
    __tablename__ = "bs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    data_z: Mapped[str] = mapped_column(String(50), default="")


class SampleRequest(BaseModel):
    a: str = ""
    b: int = 0
    c: bool = False
    d: str = ""
    e: int = 0
    f: bool = False


# ══════════════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════════════

def make_starlette_request(
    method: str = "GET",
    path: str = "/def",
    headers: Optional[Dict[str, str]] = None,
    client: Optional[Tuple[str, Optional[int]]] = ("127.0.0.1", 5000),
    path_params: Optional[Dict[str, str]] = None,
    query_string: bytes = b"",
) -> StarletteRequest:
    """Build a Starlette request without a server; the body is passed to HTTPRequest directly."""
    raw_headers = [
        (key.lower().encode("latin-1"), value.encode("latin-1"))
        for key, value in (headers or {}).items()
    ]
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "headers": raw_headers,
        "query_string": query_string,
        "client": client,
        "path_params": path_params or {},
    }
    return StarletteRequest(scope)


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings():
    return Settings(helios_secret="test-secret", session_name="test_session")


@pytest_asyncio.fixture
async def helios_app(test_settings):
    """
    Provides a Helios handle that has not been initialized yet.

    Tests call before_test() / initialize() themselves; the engine is
    disposed afterwards whatever state the test left it in.
    """
    app = Helios(test_settings)
    yield app
    await app.close_db()


@pytest.fixture
def mock_request():
    return MockRequest()
