# Overview: Service-layer push messages to customers through the LINE Messaging API.

from __future__ import annotations

import httpx
from flask import current_app


class NotificationError(Exception):
    """Raised when the push provider cannot be reached or rejects the message."""
    pass


def is_configured() -> bool:
    return bool(current_app.config.get("LINE_CHANNEL_ACCESS_TOKEN"))


def push_line_message(to: str, text: str) -> None:
    """
    Send one text message to a LINE user id.

    Raises NotificationError on transport failure or a non-2xx reply.
    """
    token = current_app.config.get("LINE_CHANNEL_ACCESS_TOKEN")
    if not token:
        raise NotificationError("LINE_CHANNEL_ACCESS_TOKEN is not set")

    url = current_app.config["LINE_PUSH_URL"]
    payload = {
        "to": to,
        "messages": [{"type": "text", "text": text}],
    }

    try:
        response = httpx.post(
            url,
            json=payload,
            headers={"Authorization": f"Bearer {token}"},
            timeout=current_app.config.get("NOTIFY_TIMEOUT_SECONDS", 10.0),
        )
    except httpx.HTTPError as exc:
        raise NotificationError(f"LINE push failed: {exc}") from exc

    if not response.is_success:
        raise NotificationError(f"LINE push rejected with HTTP {response.status_code}: {response.text}")

    current_app.logger.info("LINE push delivered to %s", to)
