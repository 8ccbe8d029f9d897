"""
FastAPI application entry point for the sponsor tracker API.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from sponsor_api.config import get_settings
from sponsor_api.dependencies import (
    CONNECTED_HEADER,
    SOURCE_HEADER,
    get_persistence_facade,
)
from sponsor_api.records import RecordNotFoundError, RecordValidationError
from sponsor_api.routes import router

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        message = error.get("msg", "Invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"


def _error_response(status_code: int, detail: str) -> JSONResponse:
    # Headers set by dependencies do not reach handler responses.
    facade = get_persistence_facade()
    headers = {
        CONNECTED_HEADER: "true" if facade.connection.is_connected else "false",
        SOURCE_HEADER: facade.source.value,
    }
    return JSONResponse(status_code=status_code, content={"detail": detail}, headers=headers)


async def _request_validation_handler(request: Request, exc: RequestValidationError):
    return _error_response(400, _validation_message(exc))


async def _record_validation_handler(request: Request, exc: RecordValidationError):
    return _error_response(400, str(exc))


async def _not_found_handler(request: Request, exc: RecordNotFoundError):
    return _error_response(404, f"{exc.kind} not found")


async def _database_error_handler(request: Request, exc: SQLAlchemyError):
    return _error_response(500, "Database error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    facade = get_persistence_facade()
    facade.refresh()
    logger.info("Serving sponsors from %s store", facade.source.value)
    yield
    facade.connection.dispose()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Sponsor Tracker API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CONNECTED_HEADER, SOURCE_HEADER],
    )
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(RecordValidationError, _record_validation_handler)
    app.add_exception_handler(RecordNotFoundError, _not_found_handler)
    app.add_exception_handler(SQLAlchemyError, _database_error_handler)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
