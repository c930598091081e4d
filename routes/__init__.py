from routes.health import router as health_router
from routes.session import router as session_router
from routes.interventions import router as interventions_router
from routes.appointments import router as appointments_router
from routes.directory import router as directory_router
from routes.dashboard import router as dashboard_router

__all__ = [
    "health_router", "session_router", "interventions_router", "appointments_router",
    "directory_router", "dashboard_router",
]
