from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from guidesync.config import setup_logging
from guidesync.database import close_db, init_db
from guidesync.dependencies import get_sync_service
from guidesync.services.scheduler_service import sync_scheduler

from guidesync.routers import main_router


setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting Guide Sync...")

    try:
        logger.info("Initializing database...")
        await init_db()

        service = get_sync_service()

        # Initial sync so the API has data before the first scheduled tick
        await service.refresh_guide()
        await service.refresh_fixtures()

        logger.info("Starting scheduler...")
        sync_scheduler.start(service)

        logger.info("Guide Sync started successfully")
    except Exception as e:
        logger.error(f"Failed to start Guide Sync: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down Guide Sync...")

    try:
        sync_scheduler.shutdown()
    except Exception as e:
        logger.error(f"Error during scheduler shutdown: {e}", exc_info=True)

    await close_db()
    logger.info("Guide Sync stopped")


app = FastAPI(
    title="Guide Sync",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(main_router)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors with details"""
    logger.error(f"Validation error for {request.method} {request.url.path}")
    logger.error(f"Validation details: {exc.errors()}")

    errors = []
    for error in exc.errors():
        error_dict = {
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "input": str(error.get("input", ""))[:100]
        }
        errors.append(error_dict)

    return JSONResponse(
        status_code=422,
        content={
            "detail": errors
        }
    )
