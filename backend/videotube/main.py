"""
FastAPI app entrypoint.

Notifications and watch history under /api/v1. Expired notifications are purged by a background job.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from videotube.api.routes import notifications, watch_history
from videotube.config import settings
from videotube.core.constants import NOTIFICATION_CLEANUP_JOB_ID
from videotube.scheduler.notification_cleanup_job import run_notification_cleanup_job

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        run_notification_cleanup_job,
        "interval",
        seconds=settings.notification_cleanup_interval_seconds,
        id=NOTIFICATION_CLEANUP_JOB_ID,
    )
    scheduler.start()
    app.state.scheduler = scheduler
    logger.info(
        "Notification cleanup scheduled every %ss",
        settings.notification_cleanup_interval_seconds,
    )
    yield
    scheduler.shutdown(wait=False)


app = FastAPI(title="VideoTube", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated) for the production frontend
_cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_cors_origins.extend(settings.extra_cors_origins())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(notifications.router, prefix="/api/v1", tags=["notifications"])
app.include_router(watch_history.router, prefix="/api/v1", tags=["watch-history"])


@app.get("/", include_in_schema=False)
def root():
    """Root: point to API docs and health."""
    return {"message": "VideoTube API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
