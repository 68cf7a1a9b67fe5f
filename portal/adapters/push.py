"""OneSignal push-notification provider."""

import logging
from typing import Dict, Any, Optional

import httpx

from portal.adapters.base import PushProvider, PushTargeting
from portal.core.config import settings
from portal.core.exceptions import ChannelDeliveryError

logger = logging.getLogger("barangay_portal.push")


class OneSignalPushProvider(PushProvider):
    """Sends web-push notifications through the OneSignal REST API."""

    def __init__(
        self,
        app_id: Optional[str] = None,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.app_id = app_id or settings.ONESIGNAL_APP_ID
        self.api_key = api_key or settings.ONESIGNAL_API_KEY
        self.api_url = api_url or settings.ONESIGNAL_API_URL
        self._transport = transport

    def build_body(self, title: str, message: str, targeting: PushTargeting) -> Dict[str, Any]:
        """Provider request body; defaults to the subscribed segment when untargeted."""
        body: Dict[str, Any] = {
            "app_id": self.app_id,
            "headings": {"en": title},
            "contents": {"en": message},
            "data": targeting.data,
        }
        if targeting.url:
            body["web_url"] = targeting.url
        if targeting.user_ids:
            body["include_external_user_ids"] = [str(u) for u in targeting.user_ids]
        if targeting.segments:
            body["included_segments"] = list(targeting.segments)
        if not (targeting.user_ids or targeting.segments):
            body["included_segments"] = [settings.ONESIGNAL_DEFAULT_SEGMENT]
        return body

    async def send(self, title: str, message: str, targeting: PushTargeting) -> Dict[str, Any]:
        if not self.api_key or not self.app_id:
            raise ChannelDeliveryError("OneSignal is not configured")

        body = self.build_body(title, message, targeting)
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=10) as client:
                resp = await client.post(
                    self.api_url,
                    json=body,
                    headers={"Authorization": f"Basic {self.api_key}"},
                )
        except httpx.HTTPError as e:
            raise ChannelDeliveryError(f"OneSignal request failed: {e}")

        if resp.status_code >= 400:
            raise ChannelDeliveryError(f"OneSignal API error: {resp.status_code} {resp.text[:200]}")
        result = resp.json()
        logger.info("Push notification sent: %s", result.get("id"))
        return result


push_provider = OneSignalPushProvider()
