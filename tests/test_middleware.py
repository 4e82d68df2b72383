"""
Helios — Middleware Tests
===========================

What:  Chain ordering, with_middleware end to end, and the built-in
       CORS, request ID and access logging middleware.
"""

import logging

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.routing import Route

from helios.middleware import (
    create_cors_middleware,
    create_logging_middleware,
    make_middleware,
    request_id_middleware,
    request_id_var,
    with_middleware,
)
from helios.request import Handler, Request
from helios.testing import MockRequest


def recording_middleware(name: str, order: list):
    def middleware(f: Handler) -> Handler:
        async def wrapped(req: Request) -> None:
            order.append(name)
            await f(req)

        return wrapped

    return middleware


async def empty_handler(req: Request) -> None:
    pass


class TestMakeMiddleware:

    @pytest.mark.asyncio
    async def test_order(self):
        order = []

        async def f(req: Request) -> None:
            order.append("f")

        fm = make_middleware(f, [
            recording_middleware("m1", order),
            recording_middleware("m2", order),
            recording_middleware("m3", order),
        ])
        await fm(MockRequest())

        assert order == ["m1", "m2", "m3", "f"]

    @pytest.mark.asyncio
    async def test_no_middleware_returns_handler(self):
        assert make_middleware(empty_handler, []) is empty_handler

    @pytest.mark.asyncio
    async def test_chain_is_built_once(self):
        """Middleware factories run at build time, not per request."""
        builds = []

        def counting(f: Handler) -> Handler:
            builds.append(1)
            return f

        fm = make_middleware(empty_handler, [counting, counting])
        await fm(MockRequest())
        await fm(MockRequest())

        assert len(builds) == 2

    @pytest.mark.asyncio
    async def test_middleware_can_short_circuit(self):
        async def f(req: Request) -> None:
            req.send_json({"reached": True}, 200)

        def deny(f: Handler) -> Handler:
            async def wrapped(req: Request) -> None:
                req.send_json({"code": "forbidden"}, 403)

            return wrapped

        req = MockRequest()
        await make_middleware(f, [deny])(req)

        assert req.status_code == 403
        assert req.get_json_response() == {"code": "forbidden"}


class TestWithMiddleware:

    @pytest.mark.asyncio
    async def test_empty_chain(self):
        async def f(req: Request) -> None:
            req.send_json({"abc": 2, "def": 3}, 201)

        app = Starlette(routes=[Route("/def", with_middleware(f, []))])
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/def")

        assert response.status_code == 201
        assert response.content == b'{"abc":2,"def":3}'

    @pytest.mark.asyncio
    async def test_runs_chain_in_order(self):
        order = []

        async def f(req: Request) -> None:
            order.append("f")
            req.send_json(order, 200)

        endpoint = with_middleware(f, [recording_middleware("m1", order), recording_middleware("m2", order)])
        app = Starlette(routes=[Route("/", endpoint)])
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/")

        assert response.json() == ["m1", "m2", "f"]


class TestCORSMiddleware:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "origin, expected",
        [
            ("http://a", "http://a"),
            ("http://b", "http://b"),
            ("http://c", ""),
            ("", ""),
        ],
    )
    async def test_allow_list(self, origin, expected):
        called = []

        async def f(req: Request) -> None:
            called.append(True)

        req = MockRequest()
        if origin:
            req.set_request_header("Origin", origin)
        await create_cors_middleware(["http://a", "http://b"])(f)(req)

        assert req.response_header["Access-Control-Allow-Origin"] == expected
        assert called == [True]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("origin", ["http://a", "https://anything.example:8443"])
    async def test_wildcard_echoes_origin(self, origin):
        req = MockRequest()
        req.set_request_header("Origin", origin)

        await create_cors_middleware(["*"])(empty_handler)(req)

        assert req.response_header["Access-Control-Allow-Origin"] == origin

    @pytest.mark.asyncio
    async def test_over_http(self):
        async def f(req: Request) -> None:
            req.send_json({}, 200)

        endpoint = with_middleware(f, [create_cors_middleware(["http://a"])])
        app = Starlette(routes=[Route("/", endpoint)])
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            allowed = await client.get("/", headers={"Origin": "http://a"})
            denied = await client.get("/", headers={"Origin": "http://c"})

        assert allowed.headers["access-control-allow-origin"] == "http://a"
        assert denied.status_code == 200
        assert denied.headers["access-control-allow-origin"] == ""


class TestRequestIDMiddleware:

    @pytest.mark.asyncio
    async def test_generates_id(self):
        seen = {}

        async def f(req: Request) -> None:
            seen["context"] = req.get_context_data("request_id")
            seen["var"] = request_id_var.get()

        req = MockRequest()
        await request_id_middleware(f)(req)

        rid = req.response_header["X-Request-ID"]
        assert len(rid) == 8
        assert seen == {"context": rid, "var": rid}
        assert request_id_var.get() == ""

    @pytest.mark.asyncio
    async def test_reuses_client_id(self):
        req = MockRequest()
        req.set_request_header("X-Request-ID", "client-id")

        await request_id_middleware(empty_handler)(req)

        assert req.response_header["X-Request-ID"] == "client-id"
        assert req.get_context_data("request_id") == "client-id"


class TestLoggingMiddleware:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, level",
        [(200, logging.INFO), (404, logging.WARNING), (503, logging.ERROR)],
    )
    async def test_level_follows_status(self, caplog, status, level):
        async def f(req: Request) -> None:
            req.send_json({}, status)

        caplog.set_level(logging.INFO, logger="helios.access")
        req = MockRequest(method="GET", path="/items/3")
        await create_logging_middleware()(f)(req)

        records = [r for r in caplog.records if r.name == "helios.access"]
        assert len(records) == 1
        assert records[0].levelno == level
        assert records[0].status == status
        assert records[0].path == "/items/3"
        assert records[0].client_ip == "127.0.0.1"

    @pytest.mark.asyncio
    async def test_includes_request_id(self, caplog):
        caplog.set_level(logging.INFO, logger="helios.access")
        req = MockRequest()
        req.set_request_header("X-Request-ID", "abc12345")

        await make_middleware(empty_handler, [request_id_middleware, create_logging_middleware()])(req)

        records = [r for r in caplog.records if r.name == "helios.access"]
        assert records[0].request_id == "abc12345"
        assert "[abc12345]" in records[0].getMessage()

    @pytest.mark.asyncio
    async def test_logs_and_reraises_handler_errors(self, caplog):
        async def f(req: Request) -> None:
            raise RuntimeError("boom")

        caplog.set_level(logging.INFO, logger="helios.access")
        with pytest.raises(RuntimeError, match="boom"):
            await create_logging_middleware()(f)(MockRequest())

        records = [r for r in caplog.records if r.name == "helios.access"]
        assert records[0].levelno == logging.ERROR

    @pytest.mark.asyncio
    async def test_custom_logger(self, caplog):
        custom = logging.getLogger("tests.access")
        caplog.set_level(logging.INFO, logger="tests.access")

        await create_logging_middleware(custom)(empty_handler)(MockRequest())

        assert [r.name for r in caplog.records] == ["tests.access"]
