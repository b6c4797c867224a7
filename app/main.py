import asyncio
import logging

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.core.config import settings
from app.core.rate_limit import limiter
from app.api.v1.api import api_router
from app.middleware.error_middleware import ErrorHandlingMiddleware
from app.services.destruction_service import PendingDestructionRegistry, run_expiry_sweeper
from app.services.notification_service import build_notifier

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Inventory of field gadgets with a two-phase self-destruct sequence",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    swagger_ui_init_oauth={
        "tokenUrl": "/api/v1/auth/token",
    }
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Pending self-destruct requests live for the lifetime of the process
app.state.destruction_registry = PendingDestructionRegistry()
app.state.destruction_notifier = build_notifier()
app.state.sweeper_task = None

app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.on_event("startup")
async def startup_event():
    """
    Application startup event.
    Starts the background sweep of expired self-destruct requests.
    """
    if settings.destruction_sweep_interval_seconds > 0:
        app.state.sweeper_task = asyncio.create_task(
            run_expiry_sweeper(
                app.state.destruction_registry,
                settings.destruction_sweep_interval_seconds,
            )
        )
        logger.info(
            f"Self-destruct expiry sweep running every {settings.destruction_sweep_interval_seconds}s")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the expiry sweep."""
    task = app.state.sweeper_task
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        app.state.sweeper_task = None


# Include API routes
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return Response(status_code=200)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
