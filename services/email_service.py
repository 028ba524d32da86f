"""
Email Service - transactional email through the Resend HTTP API
"""
import logging
from typing import Any, Dict, Optional

import httpx

from config import settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class EmailDeliveryError(Exception):
    """Raised when an email could not be handed to the provider."""


class EmailService:

    def __init__(self, api_key: Optional[str] = None, from_email: Optional[str] = None, timeout: float = 20.0):
        self.api_key = api_key or settings.resend_api_key
        self.from_email = from_email or settings.resend_from_email
        self.timeout = timeout
        if not self.api_key:
            logger.warning("RESEND_API_KEY is not set. Outgoing email will be unavailable.")

    async def send_email(
        self,
        to: str,
        subject: str,
        html_content: str,
        reply_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send a single HTML email.

        Returns:
            {"status": "sent", "id": provider message id, "to": recipient}

        Raises:
            EmailDeliveryError: if the provider is not configured or rejects the message
        """
        if not self.api_key:
            raise EmailDeliveryError("RESEND_API_KEY is not set. Cannot send email.")

        payload = {
            "from": self.from_email,
            "to": [to],
            "subject": subject,
            "html": html_content,
        }
        if reply_to:
            payload["reply_to"] = reply_to

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"Email delivery to {to} failed: {e}") from e

        return {"status": "sent", "id": response.json().get("id"), "to": to}


def get_email_service() -> EmailService:
    """FastAPI dependency; overridden in tests."""
    return EmailService()
