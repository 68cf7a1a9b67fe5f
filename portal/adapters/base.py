"""Abstract base classes for delivery providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Any, List, Optional


@dataclass
class PushTargeting:
    """Who a push notification goes to, plus click-through data."""
    user_ids: List[str] = field(default_factory=list)
    segments: List[str] = field(default_factory=list)
    url: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class EmailMessage:
    subject: str
    html: str


class PushProvider(ABC):
    """Push-notification provider.

    Implementations raise ``ChannelDeliveryError`` on failure.
    """

    @abstractmethod
    async def send(self, title: str, message: str, targeting: PushTargeting) -> Dict[str, Any]:
        """Send one notification and return the provider response (with ``id``)."""
        ...


class RealtimeProvider(ABC):
    """Real-time pub/sub provider."""

    @abstractmethod
    async def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> None:
        """Publish ``event`` with ``payload`` to every subscriber of ``channel``."""
        ...

    @abstractmethod
    def subscribe(self, channel: str) -> AsyncIterator[Dict[str, Any]]:
        """Yield envelopes published on ``channel`` until cancelled."""
        ...

    @abstractmethod
    def authorize_subscription(self, socket_id: str, channel: str, grant: Dict[str, Any]) -> str:
        """Sign a subscription grant for one socket on one channel."""
        ...

    @abstractmethod
    def verify_subscription(self, token: str) -> Dict[str, Any]:
        """Return the grant claims of a signed token, or raise ``AuthenticationError``."""
        ...


class EmailProvider(ABC):
    """Transactional-email provider."""

    @abstractmethod
    async def send(self, address: str, message: EmailMessage) -> Dict[str, Any]:
        """Send one email and return the provider response (with ``id``)."""
        ...
