import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from expense_tracker.config import DEV_SECRET_KEY, Settings, get_settings
from expense_tracker.database import build_engine, build_session_factory, init_db
from expense_tracker.errors import AppError, CategoryMoveError
from expense_tracker.logging_config import configure_logging
from expense_tracker.repositories import ExchangeRateFetcher
from expense_tracker.request_context import (
    REQUEST_ID_HEADER,
    clear_request_id,
    new_request_id,
    set_request_id,
)
from expense_tracker.routes import api_router
from expense_tracker.security.crypto import AppCrypto
from expense_tracker.services.exchange_rate_fetcher import HttpExchangeRateFetcher

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "internal server error"

STATUS_TAGS = {
    400: "incorrect-input",
    401: "unauthorized",
    404: "not-found",
    405: "incorrect-input",
    409: "conflict",
}


def _error_body(kind: str, message: str) -> dict:
    return {"status": kind, "error": message}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(
                f"{request.method} {request.url.path} failed: {exc}",
                exc_info=exc.__cause__ or exc,
            )
            body = _error_body(exc.kind, INTERNAL_ERROR_MESSAGE)
            if isinstance(exc, CategoryMoveError):
                # Categories already rewritten; repeating the move finishes the rest.
                body["count"] = exc.update_count
            return JSONResponse(status_code=exc.status_code, content=body)
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.kind, exc.message))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        kind = STATUS_TAGS.get(exc.status_code, "unknown")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(kind, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            location = [str(part) for part in error.get("loc", ())[1:]]
            errors.append({"field": ".".join(location), "message": error.get("msg", "")})
        return JSONResponse(status_code=400, content={"status": "incorrect-input", "errors": errors})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content=_error_body("unknown", INTERNAL_ERROR_MESSAGE))


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    rate_fetcher: Optional[ExchangeRateFetcher] = None,
) -> FastAPI:
    """
    Build the API application.

    ``session_factory`` and ``rate_fetcher`` default to ones built from
    settings; tests pass their own. Without an API key for the rate provider
    no fetcher is configured and reports use stored rates only.
    """
    settings = settings or get_settings()
    configure_logging(settings.logger, settings.telemetry.service_name)

    if settings.is_production() and settings.security.jwt.secret_key == DEV_SECRET_KEY:
        raise ValueError("SECURITY__JWT__SECRET_KEY must be set in production.")

    if session_factory is None:
        engine = build_engine(settings.database, production=settings.is_production())
        if settings.database.auto_create_tables:
            logger.info("Creating missing tables via SQLAlchemy metadata.")
            init_db(engine)
        session_factory = build_session_factory(engine)

    if rate_fetcher is None and settings.exchange_rate_fetcher.apikey:
        rate_fetcher = HttpExchangeRateFetcher(settings.exchange_rate_fetcher)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{settings.server.name} starting")
        yield
        if isinstance(rate_fetcher, HttpExchangeRateFetcher):
            rate_fetcher.close()
        logger.info(f"{settings.server.name} stopped")

    app = FastAPI(
        title="Expense Tracker API",
        description="API for recording expenses and building category reports",
        version="0.1.0",
        docs_url="/docs" if settings.api_docs_enabled else None,
        redoc_url="/redoc" if settings.api_docs_enabled else None,
        openapi_url="/openapi.json" if settings.api_docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.crypto = AppCrypto.from_settings(settings.security)
    app.state.rate_fetcher = rate_fetcher

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        token = set_request_id(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)"
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_request_id(token)

    register_exception_handlers(app)

    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "expense_tracker.main:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        timeout_keep_alive=settings.server.timeout.idle,
        timeout_graceful_shutdown=settings.server.timeout.shutdown,
        log_config=None,
    )


if __name__ == "__main__":
    run()
