"""Resend transactional-email provider."""

import logging
from typing import Dict, Any, Optional

import httpx

from portal.adapters.base import EmailProvider, EmailMessage
from portal.core.config import settings
from portal.core.exceptions import ChannelDeliveryError

logger = logging.getLogger("barangay_portal.email")


class ResendEmailProvider(EmailProvider):
    """Sends one HTML email per call through the Resend REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or settings.RESEND_API_KEY
        self.api_url = api_url or settings.RESEND_API_URL
        self._transport = transport

    @property
    def sender(self) -> str:
        return f"{settings.FROM_NAME} <{settings.FROM_EMAIL}>"

    async def send(self, address: str, message: EmailMessage) -> Dict[str, Any]:
        if not self.api_key:
            raise ChannelDeliveryError("Resend is not configured")

        body = {
            "from": self.sender,
            "to": [address],
            "subject": message.subject,
            "html": message.html,
        }
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=10) as client:
                resp = await client.post(
                    self.api_url,
                    json=body,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as e:
            raise ChannelDeliveryError(f"Resend request failed: {e}")

        if resp.status_code >= 400:
            raise ChannelDeliveryError(f"Resend API error: {resp.status_code} {resp.text[:200]}")
        result = resp.json()
        logger.info("Email sent to %s: %s", address, result.get("id"))
        return result


email_provider = ResendEmailProvider()
