"""API routers."""
from .users import router as users_router
from .websites import router as websites_router
from .metrics import router as metrics_router
from .notifications import router as notifications_router
from .settings import router as settings_router

__all__ = ["users_router", "websites_router", "metrics_router", "notifications_router", "settings_router"]
