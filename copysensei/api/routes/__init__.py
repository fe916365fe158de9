"""API Route modules"""

from copysensei.api.routes.chat import router as chat_router
from copysensei.api.routes.functions import router as functions_router
from copysensei.api.routes.profile import router as profile_router
from copysensei.api.routes.projects import router as projects_router

__all__ = [
    "chat_router",
    "functions_router",
    "profile_router",
    "projects_router",
]
