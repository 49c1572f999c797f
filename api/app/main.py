from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from . import settings  # noqa: E402
from .errors import install_error_handlers  # noqa: E402
from .middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware  # noqa: E402
from .routers import (  # noqa: E402
    bookmarks,
    comments,
    communities,
    follows,
    hashtags,
    messages,
    notifications,
    polls,
    reposts,
    stats,
    stories,
    system,
    users,
)

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

_STARTUP_COMPLETE = False


def _alembic_config() -> Config:
    base_dir = Path(__file__).resolve().parent.parent
    cfg = Config(str(base_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(base_dir / "alembic"))
    return cfg


def run_migrations() -> None:
    logger.info("Running Alembic migrations...")
    try:
        command.upgrade(_alembic_config(), "head")
    except Exception as e:
        logger.error(f"run_migrations: Error occurred: {e}", exc_info=True)
        raise
    logger.info("run_migrations: Completed successfully.")


def run_startup_tasks() -> None:
    global _STARTUP_COMPLETE
    if _STARTUP_COMPLETE:
        logger.info("run_startup_tasks: Already completed, skipping.")
        return

    if settings.RUN_MIGRATIONS:
        run_migrations()
    else:
        logger.info("RUN_MIGRATIONS disabled; skipping migrations.")

    _STARTUP_COMPLETE = True
    logger.info("Startup tasks completed.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    # Server won't accept requests until these complete
    run_startup_tasks()
    logger.info("Immigrant Voices API server ready")
    yield
    logger.info("Shutting down application...")


app = FastAPI(
    title="Immigrant Voices API",
    version="1.0.0",
    description="Community stories, follows, reposts, polls, messaging and notifications",
    lifespan=lifespan,
)

# Comma-separated list of allowed origins
cors_origins_str = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
if cors_origins_str == "*":
    logger.warning(
        "CORS is configured to allow all origins. "
        "This is insecure for production. Set CORS_ORIGINS to specific domains."
    )
cors_origins = [origin.strip() for origin in cors_origins_str.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=600,  # Cache preflight requests for 10 minutes
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

install_error_handlers(app)

app.include_router(system.router)
app.include_router(stories.router)
app.include_router(comments.router)
app.include_router(reposts.router)
app.include_router(follows.router)
app.include_router(notifications.router)
app.include_router(messages.router)
app.include_router(polls.router)
app.include_router(bookmarks.router)
app.include_router(hashtags.router)
app.include_router(communities.router)
app.include_router(stats.router)
app.include_router(users.router)
