"""Tests for the HTTP and Redis delivery providers."""

import json

import httpx
import pytest

from portal.adapters.base import EmailMessage, PushTargeting
from portal.adapters.email import ResendEmailProvider
from portal.adapters.push import OneSignalPushProvider
from portal.adapters.realtime import RedisRealtimeProvider
from portal.core.exceptions import AuthenticationError, ChannelDeliveryError


def _recording_transport(status_code=200, body=None):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code, json=body if body is not None else {"id": "abc"})

    return httpx.MockTransport(handler), seen


@pytest.mark.asyncio
async def test_push_targets_external_user_ids():
    transport, seen = _recording_transport()
    provider = OneSignalPushProvider(app_id="app", api_key="key", api_url="https://push.test/n", transport=transport)

    result = await provider.send("Hi", "There", PushTargeting(user_ids=["idp_1"], url="https://x/y"))

    assert result == {"id": "abc"}
    body = json.loads(seen[0].content)
    assert body["include_external_user_ids"] == ["idp_1"]
    assert body["headings"] == {"en": "Hi"}
    assert body["web_url"] == "https://x/y"
    assert "included_segments" not in body
    assert seen[0].headers["Authorization"] == "Basic key"


def test_untargeted_push_goes_to_default_segment():
    provider = OneSignalPushProvider(app_id="app", api_key="key")
    body = provider.build_body("T", "M", PushTargeting())
    assert body["included_segments"] == ["Subscribed Users"]


@pytest.mark.asyncio
async def test_push_without_credentials_fails():
    provider = OneSignalPushProvider(app_id="app", api_key="")
    provider.api_key = None
    with pytest.raises(ChannelDeliveryError):
        await provider.send("T", "M", PushTargeting())


@pytest.mark.asyncio
async def test_push_api_error_is_a_delivery_error():
    transport, _ = _recording_transport(status_code=400, body={"errors": ["bad"]})
    provider = OneSignalPushProvider(app_id="app", api_key="key", transport=transport)
    with pytest.raises(ChannelDeliveryError):
        await provider.send("T", "M", PushTargeting(segments=["Officials"]))


@pytest.mark.asyncio
async def test_email_uses_configured_sender():
    transport, seen = _recording_transport(body={"id": "em_1"})
    provider = ResendEmailProvider(api_key="re_key", api_url="https://mail.test/emails", transport=transport)

    result = await provider.send("kap@barangay.test", EmailMessage(subject="S", html="<p>x</p>"))

    assert result["id"] == "em_1"
    body = json.loads(seen[0].content)
    assert body["to"] == ["kap@barangay.test"]
    assert body["from"] == "BarangayLink System <noreply@barangaylink.com>"
    assert seen[0].headers["Authorization"] == "Bearer re_key"


@pytest.mark.asyncio
async def test_email_transport_error_is_a_delivery_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    provider = ResendEmailProvider(api_key="re_key", transport=httpx.MockTransport(handler))
    with pytest.raises(ChannelDeliveryError):
        await provider.send("a@b.c", EmailMessage(subject="S", html=""))


def test_realtime_grant_round_trip_binds_channel_and_socket():
    provider = RedisRealtimeProvider(redis_url="redis://unused:6379/0", signing_secret="s3cret")
    token = provider.authorize_subscription("123.456", "project-7", {"user_id": 4, "user_info": {"name": "A"}})

    claims = provider.verify_subscription(token)

    assert claims["channel"] == "project-7"
    assert claims["socket_id"] == "123.456"
    assert claims["user_id"] == 4


def test_realtime_grant_signed_with_other_secret_is_rejected():
    signer = RedisRealtimeProvider(redis_url="redis://unused:6379/0", signing_secret="one")
    verifier = RedisRealtimeProvider(redis_url="redis://unused:6379/0", signing_secret="two")
    token = signer.authorize_subscription("1.1", "global", {"user_id": 1})

    with pytest.raises(AuthenticationError):
        verifier.verify_subscription(token)
