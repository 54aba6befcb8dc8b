"""
Webhook management API: inspect, register and remove the Telegram webhook.
"""

import logging
from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from ..core.context import BotContext

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhook"])


def _error_response(message: str, error: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": message, "details": str(error)},
    )


@router.get("/webhookInfo")
async def get_webhook_info(request: Request):
    context: BotContext = request.app.state.context
    try:
        return await context.bot.get_webhook_info()
    except Exception as e:
        logger.error(f"Error getting webhook info: {e}")
        return _error_response("Failed to get webhook info", e)


@router.post("/setWebhook")
async def set_webhook(request: Request):
    context: BotContext = request.app.state.context
    try:
        body: Any = await request.json()
    except ValueError:
        body = None

    url = body.get("url") if isinstance(body, dict) else None
    if not isinstance(url, str) or not url.strip():
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "URL is required"},
        )

    url = url.strip()
    try:
        await context.bot.set_webhook(url, secret_token=context.settings.webhook_secret)
    except Exception as e:
        logger.error(f"Error setting webhook: {e}")
        return _error_response("Failed to set webhook", e)

    logger.info(f"Webhook updated via API: {url}")
    return {"success": True, "message": "Webhook set successfully", "url": url}


@router.post("/deleteWebhook")
async def delete_webhook(request: Request):
    context: BotContext = request.app.state.context
    try:
        await context.bot.delete_webhook()
    except Exception as e:
        logger.error(f"Error deleting webhook: {e}")
        return _error_response("Failed to delete webhook", e)

    return {"success": True, "message": "Webhook deleted successfully"}
