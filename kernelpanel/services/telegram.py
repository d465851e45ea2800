import logging

import httpx
from fastapi import HTTPException, status

from kernelpanel.core.config import get_settings
from kernelpanel.services.validation import ConfigValidationError, invalid_value, missing_field

logger = logging.getLogger(__name__)
settings = get_settings()


def verify_bot_token(token: str) -> dict:
    """Ask the Bot API who the token belongs to; returns the `getMe` result."""
    if not token:
        raise ConfigValidationError([missing_field("telegramBotToken")])

    url = f"{settings.telegram_api_base_url.rstrip('/')}/bot{token}/getMe"
    try:
        with httpx.Client(timeout=settings.telegram_timeout_seconds) as client:
            response = client.get(url)
    except httpx.HTTPError as exc:
        logger.warning("Telegram API unreachable: %s", exc.__class__.__name__)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="telegram_unreachable") from exc

    try:
        body = response.json()
    except ValueError:
        body = {}
    if response.status_code != 200 or not body.get("ok"):
        logger.info("Telegram rejected bot token (status %s)", response.status_code)
        raise ConfigValidationError([invalid_value("telegramBotToken", "Telegram rejected the bot token")])
    return body.get("result") or {}
