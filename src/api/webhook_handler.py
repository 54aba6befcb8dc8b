"""
Telegram webhook endpoint handler.

Handles:
- Webhook secret verification
- JSON body validation
- Background processing dispatch (Telegram gets its 200 immediately,
  long relays run in a tracked task)
"""

import hmac
import logging
from typing import Dict

from fastapi import APIRouter, HTTPException, Request

from ..core.context import BotContext

logger = logging.getLogger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"

router = APIRouter(tags=["webhook"])


def _log_auth_failure(request: Request, reason: str) -> None:
    """Log structured auth failure with IP and User-Agent. Never logs secrets."""
    client_ip = request.client.host if request.client else "unknown"
    user_agent = request.headers.get("user-agent", "unknown")
    logger.warning(
        "Auth failure on %s %s: reason=%s, ip=%s, user_agent=%s",
        request.method,
        request.url.path,
        reason,
        client_ip,
        user_agent,
    )


def verify_secret(request: Request, expected: str) -> bool:
    """Constant-time comparison of the secret token header."""
    received = request.headers.get(SECRET_HEADER, "")
    return hmac.compare_digest(received.encode(), expected.encode())


async def handle_webhook(request: Request, context: BotContext) -> Dict[str, str]:
    """Verify an inbound update and hand it to the bot in the background."""
    webhook_secret = context.settings.webhook_secret
    if webhook_secret and not verify_secret(request, webhook_secret):
        _log_auth_failure(request, "invalid_webhook_secret")
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        update_data = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    if not isinstance(update_data, dict):
        raise HTTPException(status_code=400, detail="Invalid update")

    update_id = update_data.get("update_id")
    logger.info(f"Received webhook update: {update_id}")

    async def process_in_background():
        success = await context.bot.process_update(update_data)
        if not success:
            logger.error(f"Failed to process update {update_id}")

    context.tasks.create_task(process_in_background(), name=f"webhook_{update_id}")
    return {"status": "ok"}


@router.api_route("/webhook", methods=["GET", "POST"])
async def webhook_endpoint(request: Request) -> Dict[str, str]:
    """Telegram webhook endpoint"""
    return await handle_webhook(request, request.app.state.context)
