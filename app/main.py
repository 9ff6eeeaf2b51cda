"""Main FastAPI application for the Recurring Routines API."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.config import LOG_LEVEL
from app.middleware.cors import add_cors_middleware
from app.db.init import init_db
from app.services.errors import RecurrenceValidationError, RepositoryError, RuleNotFoundError, TrackerError
from app.utils.logger import configure_logging
from app.utils.metrics import metrics_collector

configure_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Recurring Routines API",
    description="Recurring tasks, completion tracking, streaks and success rates",
    version="1.0.0",
)

# Add CORS middleware
add_cors_middleware(app)


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    try:
        init_db()
        logger.info("[SUCCESS] Database tables initialized successfully.")
    except Exception as e:
        logger.warning(f"[WARNING] Database initialization failed: {str(e)}")
        logger.warning("[WARNING] Server will continue but database operations may fail.")


def _error_response(status_code: int, error: TrackerError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": error.message, "code": error.code, **error.details},
    )


@app.exception_handler(RecurrenceValidationError)
async def validation_error_handler(request: Request, exc: RecurrenceValidationError):
    return _error_response(422, exc)


@app.exception_handler(RuleNotFoundError)
async def not_found_handler(request: Request, exc: RuleNotFoundError):
    return _error_response(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(RepositoryError)
async def repository_error_handler(request: Request, exc: RepositoryError):
    # Nothing was applied; the client may retry
    logger.error(f"Repository failure on {request.url.path}: {exc.message}")
    return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/")
async def root():
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to the Recurring Routines API",
        "title": "Recurring Routines API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/metrics")
async def metrics():
    """Counters and timers collected since startup."""
    return metrics_collector.get_metrics()


# Import and include routers
from app.routers import recurring_tasks_router
app.include_router(recurring_tasks_router, prefix="/api")  # /api/{user_id}/recurring-tasks


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
