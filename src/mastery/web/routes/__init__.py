"""Route handlers for Web API."""

from mastery.web.routes.health import router as health_router
from mastery.web.routes.mastery import router as mastery_router
from mastery.web.routes.tasks import router as tasks_router
from mastery.web.routes.evaluation import router as evaluation_router

__all__ = [
    "health_router",
    "mastery_router",
    "tasks_router",
    "evaluation_router",
]
