"""API routers for the Wordpix web API."""

from _03_ui.api.challenges import router as challenges_router
from _03_ui.api.credits import router as credits_router

__all__ = [
    "challenges_router",
    "credits_router",
]
