# main.py

"""FastAPI application exposing the offline data core to the POS shell."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_settings

from .db import get_engine, init_schema, reset_engine
from .exceptions import CoreError
from .obs import capture_exception, init_sentry
from .obs.logging import configure_logging
from .repos_sqlalchemy import LocalStore
from .routes_credits import router as credits_router
from .routes_metrics import router as metrics_router
from .routes_notifications import router as notifications_router
from .routes_reports import router as reports_router
from .routes_session import router as session_router
from .services.credit_ledger import CreditLedger
from .services.delivery import NotificationSink
from .services.notifications import NotificationSyncEngine
from .services.remote import RemoteClient
from .services.reports import ReportGenerator
from .services.scheduler import SyncScheduler
from .tenancy import TenantSessions
from .utils.exports import DirectorySink, FileSink
from .utils.responses import core_err, err

logger = logging.getLogger("api")


def create_app(
    *,
    store: LocalStore | None = None,
    remote: RemoteClient | None = None,
    sink: NotificationSink | None = None,
    file_sink: FileSink | None = None,
    run_scheduler: bool = True,
) -> FastAPI:
    """Wire the store, services and routers into a FastAPI app.

    Collaborators can be injected; anything left out is built from
    :func:`config.get_settings`.
    """

    settings = get_settings()
    app = FastAPI(title="ZaykaBill offline core")

    owns_store = store is None
    store = store or LocalStore(get_engine())
    sessions = TenantSessions()
    notifications = NotificationSyncEngine(
        store, remote or RemoteClient(), sink, sessions=sessions
    )
    app.state.store = store
    app.state.sessions = sessions
    app.state.notifications = notifications
    app.state.ledger = CreditLedger(store)
    app.state.reports = ReportGenerator(store, file_sink or DirectorySink(settings.export_dir))
    app.state.scheduler = SyncScheduler(notifications, sessions)

    app.include_router(session_router)
    app.include_router(notifications_router)
    app.include_router(credits_router)
    app.include_router(reports_router)
    app.include_router(metrics_router)

    @app.exception_handler(CoreError)
    async def core_error_handler(request: Request, exc: CoreError):
        logger.warning(
            exc.message,
            extra={
                "status": exc.status_code,
                "route": request.url.path,
                "tenant": request.headers.get("X-Tenant-ID"),
            },
        )
        return JSONResponse(core_err(exc), status_code=exc.status_code)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(err("BAD_REQUEST", str(exc)), status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(err(exc.status_code, exc.detail), status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", extra={"route": request.url.path})
        capture_exception(exc)
        return JSONResponse(err(500, "Internal Server Error"), status_code=500)

    @app.on_event("startup")
    async def on_startup() -> None:
        configure_logging(settings.log_level)
        init_sentry(settings.error_dsn)
        await init_schema(store.engine)
        if run_scheduler:
            app.state.scheduler.start()

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await app.state.scheduler.stop()
        if owns_store:
            await reset_engine()

    return app


__all__ = ["create_app"]
