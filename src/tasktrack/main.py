"""TaskTrack main application."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import make_url

from tasktrack import __version__
from tasktrack.api import router
from tasktrack.api.deps import validate_auth_config
from tasktrack.config import settings
from tasktrack.db.base import close_db, get_session, init_db
from tasktrack.engine import TaskWorkflowEngine
from tasktrack.middleware.trace import trace_id_middleware
from tasktrack.observability.metrics import metrics

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("tasktrack")


async def _log_inventory() -> None:
    """Report what the tracker holds at startup."""
    async with get_session() as session:
        engine = TaskWorkflowEngine(session)
        stats = await engine.task_stats()
        projects = await engine.projects.list_projects()
    logger.info(
        f"Tracking {stats['total']} tasks across {len(projects)} projects "
        f"({stats['by_status']['in_progress']} in progress, "
        f"{stats['completion_rate']}% done)"
    )


def _log_session_summary() -> None:
    counters = metrics.snapshot()["counters"]
    logger.info(
        "Session summary: "
        f"{int(counters.get('tasks.created.count', 0))} created, "
        f"{int(counters.get('tasks.advanced.count', 0))} advanced, "
        f"{int(counters.get('admission.refused.count', 0))} assignments refused, "
        f"{int(counters.get('audit.record.failed', 0))} history writes lost"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info(f"Starting TaskTrack {__version__} ({settings.env.value})")
    logger.info(
        f"Database: {make_url(settings.database_url).render_as_string(hide_password=True)}"
    )
    logger.info(
        f"Admission capacity: {settings.max_in_progress_per_member} in-progress tasks per member"
    )

    # Fail fast on insecure configuration
    validate_auth_config()

    await init_db()
    await _log_inventory()

    yield

    _log_session_summary()
    await close_db()
    logger.info("TaskTrack stopped")


app = FastAPI(
    title="TaskTrack",
    description="Multi-project task tracker with capacity-guarded workflow and audit trail",
    version=__version__,
    lifespan=lifespan,
)

# Trace ID middleware (correlation across logs)
app.middleware("http")(trace_id_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allowed_methods,
    allow_headers=settings.cors_allowed_headers,
)

app.include_router(router)


def main():
    """Entry point for the application."""
    uvicorn.run(
        "tasktrack.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
