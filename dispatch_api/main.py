"""
Main Application Entry Point

This module sets up the FastAPI application with:
- Logging configuration
- Database initialization on startup
- Exception handlers and rate limiting
- Route registration (/user, /bleeter, /events)

Run with:
    uvicorn dispatch_api.main:app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dispatch_api.config import settings
from dispatch_api.database import engine
from dispatch_api.errors import setup_exception_handlers
from dispatch_api.limiter import limiter
from dispatch_api.models import Base
from dispatch_api.routes import bleeter, events, user


logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup: create database tables that don't exist yet.
    Shutdown: dispose of the engine's connection pool.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Dispatch API started ({settings.ENVIRONMENT})")

    yield

    await engine.dispose()


app = FastAPI(title="Dispatch API", lifespan=lifespan)

# slowapi looks the limiter up on the application state
app.state.limiter = limiter
setup_exception_handlers(app)

app.include_router(user.router)
app.include_router(bleeter.router)
app.include_router(events.router)
