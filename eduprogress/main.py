"""
eduprogress/main.py
FastAPI application: progress, lesson progress, submissions and assignment
audience endpoints under /api.

Authentication is upstream: a gateway / auth middleware places the verified
principal on request.state.principal before requests reach these routes.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from eduprogress import __version__
from eduprogress.config.settings import Settings
from eduprogress.database import init_db, close_db
from eduprogress.errors import register_exception_handlers
from eduprogress.routes import progress, lessons, submissions, assignments

logging.basicConfig(
    level=getattr(logging, Settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    logger.info(f"Settings: {Settings.to_dict()}")
    try:
        await init_db()
        logger.info("Database connected successfully")
    except Exception as e:
        logger.error(f"Failed to connect to database: {str(e)}")
        raise

    yield

    logger.info("Shutting down application...")
    try:
        await close_db()
    except Exception as e:
        logger.error(f"Error closing database connection: {str(e)}")


app = FastAPI(
    title="EduProgress API",
    description="Progress and assignment-audience engine for the learning platform",
    version=__version__,
    lifespan=lifespan
)

register_exception_handlers(app)


@app.get("/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "version": __version__
    }


app.include_router(progress.router, prefix="/api")
app.include_router(lessons.router, prefix="/api")
app.include_router(submissions.router, prefix="/api")
app.include_router(assignments.router, prefix="/api")
