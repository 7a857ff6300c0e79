# app/services/email_service.py
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from app.core import config
from app.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)

POSTMARK_API_URL = "https://api.postmarkapp.com/email"


@dataclass
class EmailMessage:
    to: str
    subject: str
    html_body: str
    text_body: str
    reply_to: Optional[str] = None


class PostmarkClient:
    """Outbound transactional email through the Postmark HTTP API."""

    def __init__(
        self,
        server_token: str,
        from_email: str,
        message_stream: str = "outbound",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.server_token = server_token
        self.from_email = from_email
        self.message_stream = message_stream
        self._transport = transport

    def _payload(self, message: EmailMessage) -> dict:
        payload = {
            "From": self.from_email,
            "To": message.to,
            "Subject": message.subject,
            "HtmlBody": message.html_body,
            "TextBody": message.text_body,
            "MessageStream": self.message_stream,
        }
        if message.reply_to:
            payload["ReplyTo"] = message.reply_to
        return payload

    async def send(self, message: EmailMessage) -> None:
        headers = {
            "X-Postmark-Server-Token": self.server_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(POSTMARK_API_URL, json=self._payload(message), headers=headers)
        except httpx.HTTPError as exc:
            raise UpstreamError("postmark", f"request failed: {exc}")

        if response.status_code >= 400:
            raise UpstreamError("postmark", response.text, response.status_code)
        logger.info("Email '%s' sent to %s", message.subject, message.to)


def get_email_client() -> Optional[PostmarkClient]:
    """FastAPI dependency; None when the provider is not configured."""
    if not config.POSTMARK_SERVER_TOKEN or not config.POSTMARK_FROM_EMAIL:
        return None
    return PostmarkClient(
        server_token=config.POSTMARK_SERVER_TOKEN,
        from_email=config.POSTMARK_FROM_EMAIL,
        message_stream=config.POSTMARK_MESSAGE_STREAM,
    )


async def send_best_effort(client: Optional[PostmarkClient], message: EmailMessage) -> dict:
    """Send without raising; returns {attempted, ok[, error]} for response metadata."""
    if client is None or not message.to:
        return {"attempted": False, "ok": False}
    try:
        await client.send(message)
    except UpstreamError as exc:
        logger.warning("Best-effort email to %s failed: %s", message.to, exc)
        return {"attempted": True, "ok": False, "error": str(exc)}
    return {"attempted": True, "ok": True}
