# hrms_notify/main.py
from dotenv import load_dotenv

# 1) load environment variables from .env
load_dotenv()

import asyncio
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hrms_notify.api.accounts import router as accounts_router
from hrms_notify.api.auth import router as auth_router
from hrms_notify.api.notifications import router as notifications_router
from hrms_notify.api.push import router as push_router
from hrms_notify.api.websocket import router as ws_router
from hrms_notify.config import Settings
from hrms_notify.container import Services, build_services
from hrms_notify.core.exceptions import ServiceError
from hrms_notify.core.logging import configure_logging
from hrms_notify.infra.servicebus_consumer import ServiceBusConsumer
from hrms_notify.infra.table_client import Tables

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Builds the app. Passing `services` skips the Table Storage connection
    (tests); otherwise everything is wired on startup from `settings`.
    """
    settings = settings or (services.settings if services else Settings.from_env())
    configure_logging(settings.log_level)

    app = FastAPI(title="HRMS Notification Service")
    app.state.settings = settings
    app.state.services = services
    app.state.consumer = None
    app.state.consumer_task = None

    # 2) CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 3) REST routes
    app.include_router(auth_router)
    app.include_router(accounts_router)
    app.include_router(notifications_router)
    app.include_router(push_router)
    # 4) WebSocket route
    app.include_router(ws_router)

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    if services is not None:
        app.state.consumer = ServiceBusConsumer(services.catalog, settings)

    @app.on_event("startup")
    async def startup_event():
        if app.state.services is None:
            tables = await Tables.connect(settings)
            app.state.services = build_services(settings, tables)
            app.state.consumer = ServiceBusConsumer(app.state.services.catalog, settings)
        # 5) run the Service Bus consumer in the background
        app.state.consumer_task = asyncio.create_task(app.state.consumer.run())

    @app.on_event("shutdown")
    async def shutdown_event():
        task = app.state.consumer_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if services is None and app.state.services is not None:
            await app.state.services.tables.close()

    return app


app = create_app()
