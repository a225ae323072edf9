"""
Gantt engine - scheduling core exposed over an in-memory HTTP host.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from gantt_engine.config import get_settings
from gantt_engine.exceptions import register_exception_handlers
from gantt_engine.logging_config import get_logger, setup_logging
from gantt_engine.routes import links, tasks, timeline

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings = get_settings()
    logger.info(
        f"Starting {settings.app_name} (zoom={settings.zoom_level}, "
        f"full_week={settings.full_week}, auto_schedule={settings.auto_schedule})"
    )
    yield
    logger.info(f"Shutting down {settings.app_name}...")


app = FastAPI(
    title="Gantt Engine",
    description="Task tree, dependency links, timeline scales and auto-scheduling",
    version="0.1.0",
    lifespan=lifespan,
)

# Register custom exception handlers
register_exception_handlers(app)

# Include routers
app.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
app.include_router(links.router, prefix="/links", tags=["Links"])
app.include_router(timeline.router, prefix="/timeline", tags=["Timeline"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
