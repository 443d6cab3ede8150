"""
FastAPI application entrypoint
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .core.exceptions import TradeCoreError
from .core.logging import setup_logging, get_logger
from .database import create_tables
from .routes import transactions, ratings, disputes, notifications

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.app_name} starting", extra={"event": "startup", "debug": settings.debug})
    if settings.create_tables_on_startup:
        create_tables()
    yield
    logger.info(f"{settings.app_name} shutting down", extra={"event": "shutdown"})


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TradeCoreError)
async def trade_core_error_handler(request: Request, exc: TradeCoreError):
    level = logging.WARNING if exc.status_code >= 500 else logging.DEBUG
    logger.log(
        level,
        f"{request.method} {request.url.path} rejected: {exc.error_code}",
        extra={"event": "request_rejected", "error": exc.error_code, "status_code": exc.status_code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error_code, "detail": exc.message},
    )


app.include_router(transactions.router, prefix="/api", tags=["transactions"])
app.include_router(ratings.router, prefix="/api", tags=["ratings"])
app.include_router(disputes.router, prefix="/api/disputes", tags=["disputes"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])


@app.get("/health")
def health_check():
    return {"status": "ok", "service": settings.app_name}
