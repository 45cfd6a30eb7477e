# tracking/consumers.py
import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.conf import settings

from . import registry
from .exceptions import LocationRejected, StorageFault, SubscriptionError, TrackNotFound
from .ingest import get_ingest
from .subscriptions import SubscriptionTable

logger = logging.getLogger(__name__)


class TrackConsumer(AsyncJsonWebsocketConsumer):
    """
    One browser connection. Clients send tagged messages:
      {"type": "track:subscribe", "trackId": ...}
      {"type": "track:unsubscribe", "trackId": ...}
      {"type": "location:update", "trackId": ..., "lat": ..., "lng": ..., ...}
    """

    async def connect(self):
        self.subscriptions = SubscriptionTable()
        await self.accept()
        await self.send_json({"type": "info", "message": "Connected to tracking relay"})

    async def disconnect(self, close_code):
        try:
            await self.subscriptions.aon_connection_closed(self.channel_name)
        except StorageFault:
            logger.exception("Could not clean up subscriptions of %s", self.channel_name)

    async def receive_json(self, content, **kwargs):
        if not isinstance(content, dict):
            await self.send_error("message must be a JSON object")
            return
        handler = {
            "track:subscribe": self.handle_subscribe,
            "track:unsubscribe": self.handle_unsubscribe,
            "location:update": self.handle_location,
        }.get(content.get("type"))
        if handler is None:
            await self.send_error(f"unknown message type: {content.get('type')!r}")
            return
        await handler(content)

    async def handle_subscribe(self, content):
        track_id = content.get("trackId")
        try:
            count = await self.subscriptions.asubscribe(self.channel_name, track_id)
        except (SubscriptionError, StorageFault) as exc:
            await self.send_error(str(exc), track_id)
            return

        # late subscribers start from the registry snapshot
        try:
            current = await registry.aget_current(track_id.strip())
        except TrackNotFound:
            current = None
        except StorageFault:
            logger.exception("Could not load current location of %s", track_id)
            current = None

        await self.send_json({
            "type": "track:subscribed",
            "trackId": track_id.strip(),
            "subscriberCount": count,
            "currentLocation": current,
            "freshnessSeconds": settings.TRACKING_FRESHNESS_SECONDS,
        })

    async def handle_unsubscribe(self, content):
        track_id = content.get("trackId")
        try:
            count = await self.subscriptions.aunsubscribe(self.channel_name, track_id)
        except (SubscriptionError, StorageFault) as exc:
            await self.send_error(str(exc), track_id)
            return
        await self.send_json({
            "type": "track:unsubscribed",
            "trackId": track_id.strip(),
            "subscriberCount": count,
        })

    async def handle_location(self, content):
        data = {k: v for k, v in content.items() if k != "type"}
        try:
            accepted = await get_ingest().submit(data)
        except LocationRejected as exc:
            await self.send_error(exc.reason, data.get("trackId"))
            return
        except StorageFault as exc:
            await self.send_error(str(exc), data.get("trackId"))
            return
        await self.send_json({"type": "location:accepted", "trackId": accepted["trackId"]})

    async def send_error(self, error, track_id=None):
        await self.send_json({"type": "track:error", "trackId": track_id, "error": error})

    # Channels maps "type": "location.updated" -> method name "location_updated"
    async def location_updated(self, event):
        report = event["message"]
        await self.send_json({"type": "location:updated", **report})
        if not report.get("isActive"):
            await self.send_json({"type": "track:status", "trackId": report["trackId"], "isActive": False})
