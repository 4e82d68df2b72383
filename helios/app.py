"""
Helios — Application Handle
=============================

What:  The object holding a Helios application's shared resources: the model
       registry, the database engine and the session store.
How:   An explicit handle, constructed once per process (or per test run) and
       passed to whatever builds handlers. Lifecycle transitions are methods.
Who:   The application factory (helios.main) and test fixtures.

State machine:
    UNINITIALIZED ──initialize()──▶ PRODUCTION
    UNINITIALIZED ──before_test()─▶ TEST          (in-memory store + migrate)
    TEST / PRODUCTION ──before_test()─▶ same state (delete all rows of every registered model)
    any ──close_db()──▶ UNINITIALIZED

register_model() is valid in any state. Registering a model twice is not
de-duplicated; it is simply migrated twice.
"""

import enum
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, List, Optional, Sequence

from sqlalchemy import delete, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response

from helios.config import Settings
from helios.database import (
    create_engine,
    create_memory_engine,
    create_session_factory,
    session_scope,
)
from helios.exceptions import DatabaseInitializationError
from helios.logging_config import setup_logging
from helios.middleware.chain import Middleware, make_middleware
from helios.request import Handler, handle as handle_request
from helios.sessions import CookieSessionStore

logger = logging.getLogger(__name__)

# Signs test sessions when HELIOS_SECRET is not set
TEST_SECRET = "helios-test-secret"


class AppState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    PRODUCTION = "production"
    TEST = "test"


class Helios:
    """
    Application handle.

    Attributes:
        settings:         Configuration read from the environment
        models:           Registered ORM model classes, in registration order
        engine:           Async engine, None until initialize()/before_test()
        session_factory:  async_sessionmaker bound to `engine`
        session_store:    Signed-cookie store used by every HTTPRequest
        state:            Current AppState
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.models: List[Any] = []
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None
        self.session_store: Optional[CookieSessionStore] = None
        self.state = AppState.UNINITIALIZED

    # ── Models ────────────────────────────────────────────────────────────

    def register_model(self, model: Any) -> None:
        """Add a declarative model class to migrations and test resets."""
        self.models.append(model)

    async def migrate(self) -> None:
        """Create the table of every registered model that does not exist yet."""
        async with self._require_engine().begin() as conn:
            for model in self.models:
                await conn.run_sync(model.metadata.create_all, tables=[model.__table__])
        logger.debug("Migrated %d model(s)", len(self.models))

    async def has_table(self, table_name: str) -> bool:
        async with self._require_engine().connect() as conn:
            return await conn.run_sync(lambda sync_conn: inspect(sync_conn).has_table(table_name))

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """
        Open the production store and the session store.

        Raises:
            DatabaseInitializationError: settings are invalid or the store
                cannot be opened. Startup must abort.
        """
        if self.state is not AppState.UNINITIALIZED:
            logger.warning("Helios.initialize() called in state '%s'; ignoring", self.state.value)
            return

        try:
            self.settings.validate_required_for_production()
        except ValueError as e:
            logger.error("Configuration error: %s", e)
            raise DatabaseInitializationError(str(e)) from e

        engine = None
        try:
            engine = create_engine(
                self.settings.database_url,
                echo=self.settings.log_level == "DEBUG",
            )
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError, ImportError) as e:
            logger.critical("Cannot open database %s: %s", self.settings.database_url, e)
            if engine is not None:
                await engine.dispose()
            raise DatabaseInitializationError(
                context={"database_url": self.settings.database_url}
            ) from e

        self._open(engine)
        self.session_store = self._create_session_store(self.settings.helios_secret)
        self.state = AppState.PRODUCTION
        logger.info("Database opened: %s", engine.url.render_as_string(hide_password=True))

    async def before_test(self) -> None:
        """
        Prepare a clean database for the next test.

        The first call opens an in-memory store and migrates every registered
        model; later calls delete all rows of every registered model.
        """
        if self.engine is None:
            self._open(create_memory_engine(self.settings.test_database_url))
            if self.session_store is None:
                self.session_store = self._create_session_store(
                    self.settings.helios_secret or TEST_SECRET
                )
            self.state = AppState.TEST
            await self.migrate()
            return

        async with self.engine.begin() as conn:
            for model in reversed(self.models):
                await conn.execute(delete(model.__table__))

    async def close_db(self) -> None:
        """Release the engine and all pooled connections."""
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self.session_factory = None
        self.state = AppState.UNINITIALIZED
        logger.info("Database closed")

    @asynccontextmanager
    async def lifespan(self, app: Any) -> AsyncGenerator[None, None]:
        """
        ASGI lifespan: configure logging, open and migrate the store on
        startup, close it on shutdown.
        """
        setup_logging(self.settings.log_level)
        logger.info("Helios starting up...")
        await self.initialize()
        await self.migrate()

        yield

        logger.info("Helios shutting down...")
        await self.close_db()

    # ── Per-request resources ─────────────────────────────────────────────

    @asynccontextmanager
    async def db_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Transactional session; commits on success, rolls back on error."""
        if self.session_factory is None:
            raise RuntimeError("Database is not open; call initialize() or before_test() first")
        async with session_scope(self.session_factory) as session:
            yield session

    def handle(self, f: Handler) -> Callable[[StarletteRequest], Awaitable[Response]]:
        """
        Starlette endpoint for `f`. The session store is looked up per
        request, so endpoints can be registered before initialize().
        """
        return handle_request(f, get_session_store=lambda: self.session_store)

    def with_middleware(
        self, f: Handler, middlewares: Sequence[Middleware]
    ) -> Callable[[StarletteRequest], Awaitable[Response]]:
        """Starlette endpoint for `f` wrapped in `middlewares`, first outermost."""
        return self.handle(make_middleware(f, list(middlewares)))

    # ── Internals ─────────────────────────────────────────────────────────

    def _open(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory = create_session_factory(engine)

    def _create_session_store(self, secret: str) -> CookieSessionStore:
        return CookieSessionStore(
            secret,
            self.settings.session_name,
            max_age=self.settings.session_max_age,
            https_only=self.settings.session_https_only,
        )

    def _require_engine(self) -> AsyncEngine:
        if self.engine is None:
            raise RuntimeError("Database is not open; call initialize() or before_test() first")
        return self.engine
