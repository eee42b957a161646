"""
Helpix - Neighbourhood Help Matching
Main FastAPI Application
"""
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from helpix.core.config import settings
from helpix.core.database import init_db
from helpix.core.logging_config import configure_logging
from helpix.api import auth, profile, matching
from helpix.services.repository import DataStoreUnavailable
from helpix.services.scheduler import MatchingScheduler

logger = structlog.get_logger("helpix.main")

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    Helpix - Matching helpers with neighbourhood tasks

    ## Features
    - **Compatibility scoring**: Skills, distance, budget, availability, urgency, reputation, responsiveness and history
    - **Recommendations**: Expiring, ranked task suggestions per helper
    - **Proximity alerts**: Tasks within the helper's radius
    - **Smart notifications**: For high-priority matches and nearby tasks
    - **Background matching**: Periodic recomputation for users with auto-matching on
    """,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DataStoreUnavailable)
async def datastore_unavailable_handler(request: Request, exc: DataStoreUnavailable):
    logger.error("request_failed", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=503,
        content={"detail": "Data store unavailable, please retry"},
        headers={"Retry-After": "30"},
    )


@app.on_event("startup")
async def startup():
    """Configure logging, create tables and start background matching."""
    configure_logging()
    await init_db()

    app.state.scheduler = None
    if settings.SCHEDULER_ENABLED:
        app.state.scheduler = MatchingScheduler()
        await app.state.scheduler.start()


@app.on_event("shutdown")
async def shutdown():
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        await scheduler.stop()


# Health check
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    scheduler = getattr(app.state, "scheduler", None)
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "scheduler": bool(scheduler and scheduler.is_running),
    }


# Include routers
app.include_router(auth.router, prefix=settings.API_V1_PREFIX)
app.include_router(profile.router, prefix=settings.API_V1_PREFIX)
app.include_router(matching.router, prefix=settings.API_V1_PREFIX)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
        "api_prefix": settings.API_V1_PREFIX,
        "endpoints": {
            "auth": f"{settings.API_V1_PREFIX}/auth",
            "profile": f"{settings.API_V1_PREFIX}/profile",
            "matching": f"{settings.API_V1_PREFIX}/matching",
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "helpix.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
