"""Real-time API — channel subscription auth and the WebSocket relay."""

import asyncio
import logging
from typing import Dict

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from portal.adapters import realtime_provider
from portal.adapters.base import RealtimeProvider
from portal.db.session import get_db
from portal.models.user import User
from portal.core.exceptions import AuthenticationError, PendingApprovalError, bad_request, forbidden
from portal.core.security import get_current_principal
from portal.services.channel_authorizer import ChannelAuthorizer, SubscriptionDenial

logger = logging.getLogger("barangay_portal.api.realtime")

router = APIRouter(prefix="/realtime", tags=["realtime"])
ws_router = APIRouter()


def get_realtime_provider() -> RealtimeProvider:
    return realtime_provider


async def _read_auth_fields(request: Request) -> Dict[str, str]:
    if request.headers.get("content-type", "").startswith("application/json"):
        data = await request.json()
    else:
        data = dict(await request.form())
    return {
        "socket_id": str(data.get("socket_id") or ""),
        "channel_name": str(data.get("channel_name") or ""),
    }


@router.post("/auth")
async def authorize_channel(
    request: Request,
    db: Session = Depends(get_db),
    realtime: RealtimeProvider = Depends(get_realtime_provider),
    principal: User = Depends(get_current_principal),
):
    """Sign a subscription grant for one socket on one channel."""
    fields = await _read_auth_fields(request)
    if not fields["socket_id"] or not fields["channel_name"]:
        raise bad_request("Missing socket_id or channel_name")
    if not principal.is_active:
        raise PendingApprovalError()

    outcome = ChannelAuthorizer(db, realtime).authorize(
        principal, fields["channel_name"], fields["socket_id"]
    )
    if isinstance(outcome, SubscriptionDenial):
        raise forbidden(outcome.reason)
    return outcome.to_dict()


async def _relay(websocket: WebSocket, channel: str, realtime: RealtimeProvider) -> None:
    async for envelope in realtime.subscribe(channel):
        await websocket.send_json(envelope)


async def _answer_pings(websocket: WebSocket) -> None:
    while True:
        data = await websocket.receive_text()
        if data == "ping":
            await websocket.send_text("pong")


@ws_router.websocket("/ws/realtime")
async def websocket_realtime(
    websocket: WebSocket,
    token: str = "",
    realtime: RealtimeProvider = Depends(get_realtime_provider),
):
    """Relay events published on the granted channel to this socket."""
    try:
        claims = realtime.verify_subscription(token)
    except AuthenticationError as e:
        logger.warning("Rejected WebSocket subscription: %s", e.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    channel = claims["channel"]
    await websocket.accept()
    relay = asyncio.create_task(_relay(websocket, channel, realtime))
    receiver = asyncio.create_task(_answer_pings(websocket))
    done, pending = await asyncio.wait({relay, receiver}, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)

    if receiver in done:
        error = receiver.exception()
        if error is not None and not isinstance(error, WebSocketDisconnect):
            logger.error("WebSocket on %s failed", channel, exc_info=error)
    if relay in done:
        error = relay.exception()
        if error is not None:
            logger.error("Relay for %s stopped", channel, exc_info=error)
        if receiver not in done:
            await websocket.close(
                code=status.WS_1011_INTERNAL_ERROR if error is not None else status.WS_1000_NORMAL_CLOSURE
            )
    logger.debug("Socket left %s", channel)
