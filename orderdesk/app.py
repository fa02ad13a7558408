from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from orderdesk.config import Settings
from orderdesk.core.logging_setup import configure_logging
from orderdesk.desk import OrderDesk, build_order_desk
from orderdesk.routes import orders

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    desk: OrderDesk | None = None,
    run_scheduler: bool = True,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level, settings.log_dir)
    desk = desk or build_order_desk(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        task: asyncio.Task[None] | None = None
        if run_scheduler:
            task = asyncio.create_task(desk.scheduler.run())
        try:
            yield
        finally:
            if task is not None:
                desk.scheduler.stop()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    app = FastAPI(title="Order Desk API", version="0.1.0", lifespan=lifespan)
    app.state.desk = desk

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(orders.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Health check for load balancers."""
        return JSONResponse({"message": "API is running.", "docs": "/docs", "orders": len(desk.store)})

    logger.info("Starting order desk backend")
    return app
