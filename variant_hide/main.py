# variant_hide/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from variant_hide.api.routers.catalog_events import router as catalog_events_router
from variant_hide.core.config import get_settings
from variant_hide.core.logging import setup_logging
from variant_hide.db.session import close_engines
from variant_hide.events.bus import EventBus
from variant_hide.metrics import router as metrics_router
from variant_hide.plugin import VariantHidePlugin

logger = logging.getLogger("variant_hide")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, json=settings.JSON_LOG)

    bus = EventBus()
    plugin = VariantHidePlugin.from_settings(bus, settings)
    plugin.start()
    app.state.bus = bus
    app.state.plugin = plugin
    try:
        yield
    finally:
        plugin.stop()
        await close_engines()


app = FastAPI(
    title="variant-hide",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


@app.exception_handler(Exception)
async def _unhandled_exc(_req: Request, exc: Exception):
    logger.exception("UNHANDLED_EXC: %s", exc)
    return JSONResponse(status_code=500, content={"detail": "INTERNAL_ERROR"})


@app.exception_handler(RequestValidationError)
async def _validation_exc(_req: Request, exc: RequestValidationError):
    safe = exc.errors()
    return JSONResponse(status_code=422, content={"detail": safe})


@app.exception_handler(HTTPException)
async def _http_exc(_req: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# ===========================
#          挂载路由
# ===========================
app.include_router(catalog_events_router)
app.include_router(metrics_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
