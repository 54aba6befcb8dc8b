"""
Status and health endpoints.

Lightweight and require no authentication.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request

from ..core.context import BotContext

logger = logging.getLogger(__name__)


def _get_version() -> str:
    """Get the application version string."""
    try:
        from ..version import __version__

        return __version__
    except Exception:
        return "unknown"


def create_health_router() -> APIRouter:
    """Create and return the status/health router.

    This is a factory so the router can be included in the main app
    or used standalone in tests.
    """
    router = APIRouter(tags=["health"])

    @router.get("/")
    async def root(request: Request) -> Dict[str, Any]:
        """Root endpoint with service status."""
        context: BotContext = request.app.state.context
        return {
            "status": "Bot is running",
            "mode": context.settings.mode,
            "environment": context.settings.environment,
            "version": _get_version(),
        }

    @router.get("/health")
    async def health_endpoint(request: Request) -> Dict[str, Any]:
        """Health check endpoint."""
        context: BotContext = request.app.state.context
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "mode": context.settings.mode,
            "environment": context.settings.environment,
        }

    return router
