from codeduel.presentation.api.routes.health import router as health_router
from codeduel.presentation.api.routes.matches import router as matches_router
from codeduel.presentation.api.routes.realtime import router as realtime_router

__all__ = ["health_router", "matches_router", "realtime_router"]
