"""FastAPI application for the ledger HTTP API."""

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from smb_ledger.api.routes import (
    account_router,
    allocation_router,
    health_router,
    journal_router,
    period_router,
    reconciliation_router,
    report_router,
)
from smb_ledger.config import get_settings
from smb_ledger.container import get_container, get_database, reset_container
from smb_ledger.exceptions import SMBLedgerError
from smb_ledger.logging_config import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from smb_ledger.repositories.sqlite import SQLiteDatabase

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings)
    database = get_container().database
    logger.info(
        "api_started",
        version=settings.app_version,
        environment=settings.environment.value,
        database=database.path,
    )
    try:
        yield
    finally:
        reset_container()
        logger.info("api_stopped")


def get_db() -> SQLiteDatabase:
    """Shared database for request handlers; tests replace it via dependency_overrides."""
    return get_database()


async def request_context(request: Request, call_next) -> Response:
    """Tag every log event of a request with its id, echoing the id back."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
    bind_context(request_id=request_id, method=request.method, path=request.url.path)
    try:
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.debug("request_completed", status_code=response.status_code)
        return response
    finally:
        clear_context()


async def ledger_error_handler(request: Request, exc: SMBLedgerError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("request_rejected", error_code=exc.error_code, retryable=exc.retryable)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Journal posting, balances, allocations, year-end close and bank reconciliation",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.middleware("http")(request_context)
    app.add_exception_handler(SMBLedgerError, ledger_error_handler)

    # Handlers declare Depends() on SQLiteDatabase itself
    app.dependency_overrides[SQLiteDatabase] = get_db

    for router in (
        health_router,
        account_router,
        journal_router,
        report_router,
        period_router,
        allocation_router,
        reconciliation_router,
    ):
        app.include_router(router)
    return app


app = create_app()
