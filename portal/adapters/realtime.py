"""Redis-backed real-time provider: pub/sub fan-out plus signed subscription grants."""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, AsyncIterator

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from jose import JWTError, jwt

from portal.adapters.base import RealtimeProvider
from portal.core.config import settings
from portal.core.exceptions import AuthenticationError, ChannelDeliveryError

logger = logging.getLogger("barangay_portal.realtime")

GRANT_ALGORITHM = "HS256"
CHANNEL_PREFIX = "realtime:"


class RedisRealtimeProvider(RealtimeProvider):
    """Publishes channel events on Redis and signs WebSocket subscription grants."""

    def __init__(self, redis_url: Optional[str] = None, signing_secret: Optional[str] = None):
        self.redis_url = redis_url or settings.REDIS_URL
        self.signing_secret = signing_secret or settings.REALTIME_SIGNING_SECRET
        self._client: Optional[aioredis.Redis] = None

    @property
    def client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.from_url(
                self.redis_url,
                decode_responses=True,
                max_connections=100,
            )
        return self._client

    async def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> None:
        message = json.dumps({"channel": channel, "event": event, "data": payload}, default=str)
        try:
            await self.client.publish(CHANNEL_PREFIX + channel, message)
        except RedisError as e:
            raise ChannelDeliveryError(f"Real-time publish to {channel} failed: {e}")

    async def subscribe(self, channel: str) -> AsyncIterator[Dict[str, Any]]:
        """Yield decoded envelopes published on ``channel`` until cancelled."""
        pubsub = self.client.pubsub()
        try:
            await pubsub.subscribe(CHANNEL_PREFIX + channel)
        except RedisError as e:
            await pubsub.close()
            raise ChannelDeliveryError(f"Real-time subscribe to {channel} failed: {e}")
        try:
            async for raw in pubsub.listen():
                if raw.get("type") != "message":
                    continue
                yield json.loads(raw["data"])
        finally:
            await pubsub.unsubscribe(CHANNEL_PREFIX + channel)
            await pubsub.close()

    def authorize_subscription(self, socket_id: str, channel: str, grant: Dict[str, Any]) -> str:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.REALTIME_GRANT_EXPIRY_MINUTES)
        claims = {
            "socket_id": socket_id,
            "channel": channel,
            "user_id": grant["user_id"],
            "user_info": grant.get("user_info", {}),
            "exp": expire,
        }
        return jwt.encode(claims, self.signing_secret, algorithm=GRANT_ALGORITHM)

    def verify_subscription(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.signing_secret, algorithms=[GRANT_ALGORITHM])
        except JWTError:
            raise AuthenticationError("Invalid or expired subscription grant")

    async def health_check(self) -> bool:
        """Check if Redis is reachable."""
        try:
            return await self.client.ping()
        except RedisError:
            return False


realtime_provider = RedisRealtimeProvider()
