"""Live stream of engine notifications over WebSocket.

Clients subscribe to channels (``vesting``, ``registry``, ``admin``) and may
narrow a subscription to one beneficiary and to specific event types. The
engine hands every committed ``VestingEvent`` to ``event_stream``; a
background task fans them out so a slow socket never holds the engine guard.
"""
import asyncio
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Set, Tuple

import structlog
from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect

from tokenvest.models.vesting_event import VestingEvent, VestingEventType

logger = structlog.get_logger()

router = APIRouter()

CHANNELS = {
    "vesting": "Schedule locks, claims and revocations",
    "registry": "Supported asset changes",
    "admin": "Pause state and administrator changes",
}

Delivery = Tuple[VestingEventType, Optional[str], dict]


def parse_event_types(values: Iterable[str]) -> Set[VestingEventType]:
    try:
        return {VestingEventType(value) for value in values}
    except ValueError as e:
        raise ValueError(f"Unknown event type: {e}") from None


@dataclass
class Subscription:
    """What a single socket wants to receive"""
    channels: Set[str] = field(default_factory=set)
    beneficiary: Optional[str] = None  # only narrows the vesting channel
    event_types: Set[VestingEventType] = field(default_factory=set)  # empty means all

    def matches(self, event_type: VestingEventType, beneficiary: Optional[str]) -> bool:
        if event_type.channel not in self.channels:
            return False
        if self.event_types and event_type not in self.event_types:
            return False
        if self.beneficiary and event_type.channel == "vesting":
            return beneficiary == self.beneficiary
        return True

    def describe(self) -> dict:
        return {
            "channels": sorted(self.channels),
            "beneficiary": self.beneficiary,
            "event_types": sorted(t.value for t in self.event_types),
        }


class EventStream:
    """Fan-out of committed notifications to subscribed sockets"""

    def __init__(self):
        self.subscribers: Dict[WebSocket, Subscription] = {}
        self.published: Counter = Counter()  # event type value -> events queued
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self._worker is None:
            self._worker = asyncio.create_task(self._drain())
            logger.info("Event stream started")

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Event stream stopped", undelivered=self._outbox.qsize())

    async def publish_event(self, event: VestingEvent) -> None:
        """Queue a committed notification for delivery"""
        self.published[event.event_type.value] += 1
        message = {
            "type": "event",
            "channel": event.event_type.channel,
            "event": event.to_message(),
        }
        await self._outbox.put((event.event_type, event.beneficiary, message))

    async def _drain(self) -> None:
        while True:
            event_type, beneficiary, message = await self._outbox.get()
            try:
                await self.deliver(event_type, beneficiary, message)
            except Exception as e:
                logger.error("Event delivery failed", event_type=event_type.value, error=str(e))

    async def deliver(self, event_type: VestingEventType, beneficiary: Optional[str], message: dict) -> int:
        """Send to every matching subscriber. Returns the number of sockets reached."""
        reached = 0
        dead = []
        for websocket, subscription in list(self.subscribers.items()):
            if not subscription.matches(event_type, beneficiary):
                continue
            try:
                await websocket.send_json(message)
                reached += 1
            except Exception as e:
                logger.warning("Dropping unreachable subscriber", error=str(e))
                dead.append(websocket)

        for websocket in dead:
            self.detach(websocket)
        return reached

    async def attach(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.subscribers[websocket] = Subscription()
        logger.info("Subscriber attached", subscribers=len(self.subscribers))

    def detach(self, websocket: WebSocket) -> None:
        if self.subscribers.pop(websocket, None) is not None:
            logger.info("Subscriber detached", subscribers=len(self.subscribers))

    def subscribe(
        self,
        websocket: WebSocket,
        channels: Iterable[str],
        beneficiary: Optional[str] = None,
        event_types: Iterable[str] = (),
    ) -> Subscription:
        """Replace the socket's subscription. Unknown channels are ignored."""
        subscription = Subscription(
            channels={c for c in channels if c in CHANNELS},
            beneficiary=beneficiary or None,
            event_types=parse_event_types(event_types),
        )
        self.subscribers[websocket] = subscription
        return subscription

    def stats(self, event_type: Optional[VestingEventType] = None) -> dict:
        if event_type is None:
            return {
                "subscribers": len(self.subscribers),
                "pending": self._outbox.qsize(),
                "published": dict(self.published),
            }
        listening = sum(
            1 for s in self.subscribers.values()
            if event_type.channel in s.channels and (not s.event_types or event_type in s.event_types)
        )
        return {
            "event_type": event_type.value,
            "channel": event_type.channel,
            "subscribers": listening,
            "published": self.published[event_type.value],
        }


event_stream = EventStream()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    Notification stream.

    Client messages:
    - {"type": "subscribe", "channels": ["vesting"], "beneficiary": "0x..", "event_types": ["tokens_claimed"]}
    - {"type": "unsubscribe"}
    - {"type": "ping"}
    """
    await event_stream.attach(websocket)
    await websocket.send_json({"type": "connected", "channels": CHANNELS})

    try:
        while True:
            data = await websocket.receive_json()
            match data.get("type"):
                case "subscribe":
                    try:
                        subscription = event_stream.subscribe(
                            websocket,
                            data.get("channels", []),
                            beneficiary=data.get("beneficiary"),
                            event_types=data.get("event_types", []),
                        )
                    except ValueError as e:
                        await websocket.send_json({"type": "error", "message": str(e)})
                        continue
                    await websocket.send_json({"type": "subscribed", **subscription.describe()})
                case "unsubscribe":
                    event_stream.subscribe(websocket, [])
                    await websocket.send_json({"type": "unsubscribed"})
                case "ping":
                    await websocket.send_json({"type": "pong"})
                case other:
                    await websocket.send_json({"type": "error", "message": f"Unknown message type: {other}"})
    except WebSocketDisconnect:
        event_stream.detach(websocket)
    except Exception as e:
        logger.error("WebSocket error", error=str(e))
        event_stream.detach(websocket)


@router.get("/ws/stats")
async def websocket_stats(event_type: Optional[str] = Query(None, description="Limit to one event type")):
    """Subscriber and delivery counters, optionally for a single event type"""
    if event_type is None:
        return event_stream.stats()
    try:
        parsed = VestingEventType(event_type)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid event type: {event_type}")
    return event_stream.stats(parsed)


websocket_router = router
