"""Main FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from api.plan_routes import router as plan_router
from api.schedule_routes import router as schedule_router
from config.settings import settings
from models.database import (
    close_mongo_connection,
    close_redis_connection,
    connect_to_redis,
    init_mongo,
)
from utils.logger import setup_logger

logger = setup_logger(__name__)


def warn_if_cron_unprotected() -> None:
    if settings.cron_secret:
        return
    if settings.debug:
        logger.warning("CRON_SECRET is not set; the cron generation endpoint accepts unauthenticated calls")
    else:
        logger.warning("CRON_SECRET is not set; the cron generation endpoint will refuse every call")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown events."""
    # Startup
    logger.info("Starting application...")
    await init_mongo()  # Connect to MongoDB and initialize collections with indexes
    await connect_to_redis()
    warn_if_cron_unprotected()
    logger.info("Application started successfully")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await close_redis_connection()
    await close_mongo_connection()
    logger.info("Application shut down")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Workout plan scheduling: weekly templates, calendar generation, conflicts and rescheduling",
    lifespan=lifespan
)

# Frontend dev servers plus configured origins
frontend_origins = [
    "http://localhost:5173",  # Vite default
    "http://127.0.0.1:5173",
    "http://localhost:3000",  # React default
    "http://127.0.0.1:3000",
] + settings.cors_origins

# Remove duplicates while preserving order
unique_origins = list(dict.fromkeys(frontend_origins))

logger.info(f"CORS configured with origins: {unique_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=unique_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log each request with its response status."""
    response = await call_next(request)
    logger.info(f"{request.method} {request.url.path} -> {response.status_code}")
    return response

# Include API routes
app.include_router(plan_router)
app.include_router(schedule_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Workout Planner API",
        "version": settings.app_version,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.app_name
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
