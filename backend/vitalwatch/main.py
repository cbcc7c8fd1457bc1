"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

from .config import settings
from .database import init_db, close_db, async_session
from .routers import users_router, websites_router, metrics_router, notifications_router, settings_router
from .services.dispatcher import NotificationDispatcher, SmtpMailTransport
from .services.scheduler import scheduler_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting VitalWatch")

    await init_db()
    logger.info("Database initialized")

    dispatcher = NotificationDispatcher(async_session, SmtpMailTransport(async_session))
    scheduler_service.start(dispatcher)

    yield

    scheduler_service.stop()
    await close_db()
    logger.info("Shutdown complete")


async def storage_unavailable_handler(request: Request, exc: Exception):
    """Writes that could not reach storage fail loudly instead of being dropped."""
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable, please retry"})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="VitalWatch",
        description="Core Web Vitals tracking with threshold alerts and email digests",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware for the dashboard frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict to your domain
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(OperationalError, storage_unavailable_handler)
    app.add_exception_handler(InterfaceError, storage_unavailable_handler)

    app.include_router(users_router)
    app.include_router(websites_router)
    app.include_router(metrics_router)
    app.include_router(notifications_router)
    app.include_router(settings_router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)
