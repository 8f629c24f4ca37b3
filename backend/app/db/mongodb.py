"""
Shared MongoDB client for the whole process.

CONNECTION STRATEGY
===================

  - The first caller of ``connect()`` starts a connection attempt; the
    attempt is stored as a pending task.
  - Callers arriving while that attempt is running await the same task,
    so only one client is ever opened.
  - On success the client is cached for the process lifetime and returned
    immediately to every later caller.
  - On failure the error is raised to every waiter and the pending task is
    cleared, so the next call starts a fresh attempt.
  - ``close()``/``reset()`` during an attempt cancel it; its waiters get
    ConnectionFailure and nothing is cached.

Indexes are never created implicitly here. ``app.db.indexes`` builds them
as an explicit step.

MONGODB_URI is read when this module is imported: a missing URI raises
ConfigurationError at process start.
"""

import asyncio
import time
from typing import Any, Callable, Optional

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import ConnectionFailure

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import mongodb_connect_latency, record_connection_attempt

logger = get_logger(__name__)
settings = get_settings()

ClientFactory = Callable[..., Any]


class MongoConnectionManager:
    """Process-scoped owner of the single AsyncMongoClient."""

    def __init__(
        self,
        uri: str,
        *,
        server_selection_timeout_ms: int = 30_000,
        db_name: Optional[str] = None,
        client_factory: ClientFactory = AsyncMongoClient,
    ) -> None:
        self._uri = uri
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._db_name = db_name
        self._client_factory = client_factory
        self._client: Optional[AsyncMongoClient] = None
        self._pending: Optional[asyncio.Future] = None

    @property
    def client(self) -> Optional[AsyncMongoClient]:
        return self._client

    @property
    def connecting(self) -> bool:
        return self._pending is not None and self._client is None

    async def connect(self) -> AsyncMongoClient:
        if self._client is not None:
            return self._client

        if self._pending is None:
            self._pending = asyncio.ensure_future(self._open())
            self._pending.add_done_callback(_consume_outcome)

        pending = self._pending
        try:
            # shield: a cancelled waiter must not cancel the shared attempt
            client = await asyncio.shield(pending)
        except asyncio.CancelledError:
            if pending.cancelled() and self._pending is not pending:
                raise ConnectionFailure("MongoDB connection attempt abandoned by close()") from None
            raise
        except Exception:
            if self._pending is pending:
                self._pending = None
            raise

        if self._pending is not pending:
            # closed or reset after the attempt finished, before this waiter resumed
            raise ConnectionFailure("MongoDB connection attempt abandoned by close()")

        self._client = client
        return client

    async def _open(self) -> AsyncMongoClient:
        start = time.perf_counter()
        client = self._client_factory(
            self._uri,
            serverSelectionTimeoutMS=self._server_selection_timeout_ms,
        )
        try:
            await client.admin.command("ping")
        except asyncio.CancelledError:
            await client.close()
            raise
        except Exception as e:
            record_connection_attempt(success=False)
            logger.error("mongodb_connection_failed", error=str(e))
            await client.close()
            raise

        elapsed = time.perf_counter() - start
        mongodb_connect_latency.observe(elapsed)
        record_connection_attempt(success=True)
        logger.info("mongodb_connected", duration_ms=round(elapsed * 1000, 2))
        return client

    async def get_database(self) -> AsyncDatabase:
        client = await self.connect()
        if self._db_name:
            return client.get_database(self._db_name)
        return client.get_default_database()

    async def close(self) -> None:
        """Close the client (cached or just opened); the next connect() opens a new one."""
        client = self._client
        pending = self._pending
        self.reset()
        if client is None and pending is not None and pending.done():
            if not pending.cancelled() and pending.exception() is None:
                client = pending.result()
        if client is not None:
            await client.close()
            logger.info("mongodb_closed")

    def reset(self) -> None:
        """Forget all state, abandoning an attempt that is still running."""
        pending = self._pending
        self._client = None
        self._pending = None
        if pending is not None and not pending.done():
            pending.cancel()


def _consume_outcome(task: asyncio.Future) -> None:
    # every waiter may have been cancelled; mark the failure as retrieved
    if not task.cancelled():
        task.exception()


_manager = MongoConnectionManager(
    settings.MONGODB_URI,
    server_selection_timeout_ms=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
    db_name=settings.MONGODB_DB_NAME,
)


def get_connection_manager() -> MongoConnectionManager:
    return _manager


async def connect_to_database() -> AsyncMongoClient:
    """Reuse the cached client, join an in-flight attempt, or start one."""
    return await _manager.connect()


async def close_database() -> None:
    await _manager.close()


async def get_db() -> AsyncDatabase:
    """FastAPI dependency yielding the configured database."""
    return await _manager.get_database()
