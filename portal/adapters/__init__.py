"""Delivery providers for push, real-time and email channels."""

from portal.adapters.email import ResendEmailProvider, email_provider
from portal.adapters.push import OneSignalPushProvider, push_provider
from portal.adapters.realtime import RedisRealtimeProvider, realtime_provider

__all__ = [
    "ResendEmailProvider", "email_provider",
    "OneSignalPushProvider", "push_provider",
    "RedisRealtimeProvider", "realtime_provider",
]
