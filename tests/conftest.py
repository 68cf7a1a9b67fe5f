"""Shared fixtures: in-memory database, fake delivery providers, API client."""

import asyncio
import itertools
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import portal.models  # noqa: F401
from portal.adapters.base import EmailMessage, EmailProvider, PushProvider, PushTargeting, RealtimeProvider
from portal.core.config import settings
from portal.core.exceptions import AuthenticationError, ChannelDeliveryError
from portal.core.roles import Role
from portal.db.base import Base
from portal.models.user import User


class FakePush(PushProvider):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Dict[str, Any]] = []

    async def send(self, title: str, message: str, targeting: PushTargeting) -> Dict[str, Any]:
        if self.fail:
            raise ChannelDeliveryError("push provider unavailable")
        self.sent.append({"title": title, "message": message, "targeting": targeting})
        return {"id": f"push-{len(self.sent)}"}


class FakeRealtime(RealtimeProvider):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.published: List[Dict[str, Any]] = []

    async def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> None:
        if self.fail:
            raise ChannelDeliveryError("realtime provider unavailable")
        self.published.append({"channel": channel, "event": event, "payload": payload})

    async def subscribe(self, channel: str):
        if self.fail:
            raise ChannelDeliveryError("realtime provider unavailable")
        for item in self.published:
            if item["channel"] == channel:
                yield {"channel": channel, "event": item["event"], "data": item["payload"]}
        await asyncio.Event().wait()

    def authorize_subscription(self, socket_id: str, channel: str, grant: Dict[str, Any]) -> str:
        return f"signed:{socket_id}:{channel}:{grant['user_id']}"

    def verify_subscription(self, token: str) -> Dict[str, Any]:
        if not token.startswith("signed:"):
            raise AuthenticationError("bad grant")
        _, socket_id, channel, user_id = token.split(":", 3)
        return {"socket_id": socket_id, "channel": channel, "user_id": int(user_id)}


class FakeEmail(EmailProvider):
    def __init__(self, failing: Optional[set] = None):
        self.failing = failing or set()
        self.sent: List[Dict[str, Any]] = []

    async def send(self, address: str, message: EmailMessage) -> Dict[str, Any]:
        if address in self.failing:
            raise ChannelDeliveryError(f"rejected {address}")
        self.sent.append({"to": address, "subject": message.subject, "html": message.html})
        return {"id": f"email-{len(self.sent)}"}


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(role: Role = Role.STAFF, is_active: bool = True, name: Optional[str] = None) -> User:
        n = next(counter)
        user = User(
            external_id=f"idp_{n}",
            email=f"user{n}@barangay.test",
            name=name or f"{role.value.title()} {n}",
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def fake_push():
    return FakePush()


@pytest.fixture
def fake_realtime():
    return FakeRealtime()


@pytest.fixture
def fake_email():
    return FakeEmail()


@pytest.fixture
def router_factory(db, fake_push, fake_realtime, fake_email):
    from portal.services.notification_router import NotificationRouter

    def _build(push=None, realtime=None, email=None, channel_timeout=None) -> NotificationRouter:
        return NotificationRouter(
            db,
            push or fake_push,
            realtime or fake_realtime,
            email or fake_email,
            channel_timeout=channel_timeout,
            email_delay=0,
        )

    return _build


def token_for(user: User) -> str:
    return jwt.encode({"sub": user.external_id}, settings.IDP_JWT_SECRET, algorithm=settings.IDP_JWT_ALGORITHM)


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest.fixture
def client(db, router_factory, fake_realtime):
    from portal.api.realtime import get_realtime_provider
    from portal.db.session import get_db
    from portal.main import app
    from portal.services.notification_router import get_notification_router

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_notification_router] = lambda: router_factory()
    app.dependency_overrides[get_realtime_provider] = lambda: fake_realtime
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
