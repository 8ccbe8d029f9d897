"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from fastapi import Response

from sponsor_api.config import get_settings
from sponsor_api.connection import ConnectionManager
from sponsor_api.db import init_schema
from sponsor_api.facade import PersistenceFacade
from sponsor_api.flatfile import JsonFileRepository

CONNECTED_HEADER = "X-Db-Connected"
SOURCE_HEADER = "X-Data-Source"

_connection_manager: ConnectionManager | None = None
_fallback_repository: JsonFileRepository | None = None
_facade: PersistenceFacade | None = None


def get_connection_manager() -> ConnectionManager:
    """
    Return a singleton connection manager so connectivity state persists across requests.
    """
    global _connection_manager
    if _connection_manager:
        return _connection_manager

    settings = get_settings()
    _connection_manager = ConnectionManager(
        settings.database_url,
        connect_timeout=settings.db_connect_timeout_seconds,
        retry_interval=settings.db_retry_interval_seconds,
        health_check_interval=settings.db_health_check_interval_seconds,
        initialize=init_schema,
    )
    return _connection_manager


def get_fallback_repository() -> JsonFileRepository:
    global _fallback_repository
    if _fallback_repository:
        return _fallback_repository

    settings = get_settings()
    _fallback_repository = JsonFileRepository(settings.data_dir)
    return _fallback_repository


def get_persistence_facade() -> PersistenceFacade:
    global _facade
    if _facade:
        return _facade

    _facade = PersistenceFacade(get_connection_manager(), get_fallback_repository())
    return _facade


def get_facade(response: Response) -> PersistenceFacade:
    """
    Per-request facade. Re-checks connectivity and stamps the response with
    the backend that will serve it.
    """
    facade = get_persistence_facade()
    connected = facade.refresh()
    response.headers[CONNECTED_HEADER] = "true" if connected else "false"
    response.headers[SOURCE_HEADER] = facade.source.value
    return facade


def reset_dependencies() -> None:
    """Drop cached singletons and settings (useful in tests)."""
    global _connection_manager, _fallback_repository, _facade
    if _connection_manager:
        _connection_manager.dispose()
    _connection_manager = None
    _fallback_repository = None
    _facade = None
    get_settings.cache_clear()
