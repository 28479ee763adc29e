from __future__ import annotations

import json
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .errors import StoreError, ValidationError
from .logging_config import configure_logging, logger
from .routes import api_router
from .services import CallbackDispatcher, HookScheduler, HookService, HookStore
from .services.scheduler import Dispatcher
from .utils import error_response


HTTP_422_UNPROCESSABLE = 422

_VALIDATION_STATUS = {
    ValidationError.MISSING_FIELD: status.HTTP_400_BAD_REQUEST,
    ValidationError.EMPTY_FIELD: status.HTTP_400_BAD_REQUEST,
    ValidationError.INVALID_EXPRESSION: HTTP_422_UNPROCESSABLE,
}


# Register global exception handlers for consistent error responses across the API
def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _hook_validation_handler(request: Request, exc: ValidationError):
        logger.debug(
            "hook rejected",
            extra={"reason": exc.reason, "field": exc.field, "path": str(request.url)},
        )
        return error_response(
            exc.message,
            status_code=_VALIDATION_STATUS.get(exc.reason, status.HTTP_400_BAD_REQUEST),
            reason=exc.reason,
        )

    @app.exception_handler(StoreError)
    async def _store_error_handler(request: Request, exc: StoreError):
        logger.error("hook store failure", extra={"error": str(exc), "path": str(request.url)})
        return error_response("Storage unavailable", status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.debug("validation error", extra={"errors": exc.errors(), "path": str(request.url)})
        return JSONResponse(
            {"ok": False, "error": "Invalid request", "detail": _jsonable_errors(exc)},
            status_code=HTTP_422_UNPROCESSABLE,
        )

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException):
        logger.debug(
            "http error",
            extra={"detail": exc.detail, "status": exc.status_code, "path": str(request.url)},
        )
        detail = exc.detail
        if not isinstance(detail, str):
            detail = json.dumps(detail)
        return JSONResponse(
            {"ok": False, "error": detail},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": str(request.url)})
        return JSONResponse(
            {"ok": False, "error": "Internal server error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


def _jsonable_errors(exc: RequestValidationError) -> list:
    # pydantic error contexts may carry exception objects
    return json.loads(json.dumps(exc.errors(), default=str))


def create_app(
    settings: Optional[Settings] = None,
    *,
    dispatcher: Optional[Dispatcher] = None,
) -> FastAPI:
    """Build the API together with the store, dispatcher and scheduler it owns."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)

    store = HookStore(settings.database_path)
    hook_service = HookService(store)
    callback_dispatcher = dispatcher or CallbackDispatcher(settings.dispatch_timeout_seconds)
    scheduler = HookScheduler(
        store,
        callback_dispatcher,
        tick_interval_seconds=settings.tick_interval_seconds,
        tolerance_seconds=settings.tick_tolerance_seconds,
        max_concurrent_dispatches=settings.max_concurrent_dispatches,
    )

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url=settings.resolved_docs_url,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.hook_service = hook_service
    app.state.dispatcher = callback_dispatcher
    app.state.scheduler = scheduler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.on_event("startup")
    # Start the dispatch loop when the app starts
    async def _start_scheduler() -> None:
        if not settings.scheduler_enabled:
            logger.info("Hook scheduler disabled by configuration")
            return
        await scheduler.start()

    @app.on_event("shutdown")
    # Stop the dispatch loop and release the outbound HTTP client
    async def _stop_scheduler() -> None:
        await scheduler.stop()
        close = getattr(callback_dispatcher, "close", None)
        if close is not None:
            await close()

    logger.info(
        "Application configured",
        extra={"database": str(settings.database_path), "auth": settings.auth_enabled},
    )
    return app


__all__ = ["create_app", "register_exception_handlers"]
