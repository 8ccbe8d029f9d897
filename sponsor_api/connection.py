"""
Lifecycle of the primary-store connection.

The manager owns the SQLAlchemy engine and a single observable fact: whether
the primary store is currently reachable. It is re-evaluated on a timer so
the service falls back to flat files when the database goes away and returns
to it once the database is back.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from enum import Enum
from typing import Callable, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    DISABLED = "disabled"


def build_engine(database_url: str, connect_timeout: float = 5.0) -> Engine:
    """Create an engine whose connection attempts are bounded by ``connect_timeout``."""
    url = make_url(database_url)
    backend = url.get_backend_name()
    kwargs: dict = {"future": True, "pool_pre_ping": True}
    if backend == "sqlite":
        connect_args = {"timeout": connect_timeout, "check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            # One shared connection, otherwise every checkout gets an empty db.
            kwargs["poolclass"] = StaticPool
    else:
        connect_args = {"connect_timeout": max(1, math.ceil(connect_timeout))}
        kwargs["pool_recycle"] = 1800
        kwargs["pool_timeout"] = connect_timeout
    return create_engine(url, connect_args=connect_args, **kwargs)


class ConnectionManager:
    """
    Tracks connectivity to the primary store.

    With no ``database_url`` the manager is permanently disabled and never
    attempts a connection.
    """

    def __init__(
        self,
        database_url: Optional[str],
        *,
        connect_timeout: float = 5.0,
        retry_interval: float = 10.0,
        health_check_interval: float = 30.0,
        initialize: Optional[Callable[[Engine], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.database_url = database_url
        self.connect_timeout = connect_timeout
        self.retry_interval = retry_interval
        self.health_check_interval = health_check_interval
        self._initialize = initialize
        self._clock = clock
        self._engine: Optional[Engine] = None
        self._initialized = False
        self._last_attempt: Optional[float] = None
        self._lock = threading.Lock()
        self._state = (
            ConnectionState.DISCONNECTED if database_url else ConnectionState.DISABLED
        )

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def engine(self) -> Engine:
        if self._engine is None or not self.is_connected:
            raise RuntimeError("Primary store is not connected")
        return self._engine

    def connect(self) -> bool:
        """Attempt (or re-verify) the connection now."""
        if self._state == ConnectionState.DISABLED:
            return False
        with self._lock:
            first_attempt = self._last_attempt is None
            self._last_attempt = self._clock()
            try:
                if self._engine is None:
                    self._engine = build_engine(self.database_url, self.connect_timeout)
                with self._engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                if not self._initialized and self._initialize is not None:
                    self._initialize(self._engine)
                self._initialized = True
            except (SQLAlchemyError, OSError, ImportError) as exc:
                if first_attempt or self.is_connected:
                    logger.warning("Primary store unreachable, using flat files: %s", exc)
                else:
                    logger.debug("Primary store still unreachable: %s", exc)
                self._state = ConnectionState.DISCONNECTED
                return False
            if self._state != ConnectionState.CONNECTED:
                logger.info("Connected to primary store")
            self._state = ConnectionState.CONNECTED
            return True

    def ensure_connected(self) -> bool:
        """
        Return current connectivity, re-checking when the relevant interval
        has elapsed since the last attempt.
        """
        if self._state == ConnectionState.DISABLED:
            return False
        interval = (
            self.health_check_interval if self.is_connected else self.retry_interval
        )
        if self._last_attempt is None or self._clock() - self._last_attempt >= interval:
            return self.connect()
        return self.is_connected

    def mark_disconnected(self, exc: BaseException) -> None:
        """Record a connection-level failure seen while running an operation."""
        if self._state == ConnectionState.DISABLED:
            return
        if self.is_connected:
            logger.warning("Lost connection to primary store: %s", exc)
        self._state = ConnectionState.DISCONNECTED
        self._last_attempt = self._clock()

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._initialized = False
        if self._state != ConnectionState.DISABLED:
            self._state = ConnectionState.DISCONNECTED
