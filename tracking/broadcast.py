# tracking/broadcast.py
import asyncio
import logging

from channels.layers import get_channel_layer

from .exceptions import StorageFault, TransportFailure
from .subscriptions import SubscriptionTable

logger = logging.getLogger(__name__)


class Broadcaster:
    """
    Pushes accepted reports to every connection subscribed to the track.
    Best effort: a failed delivery is logged and superseded by the next report.
    """

    def __init__(self, subscriptions=None, channel_layer=None, msg_type="location.updated"):
        self.subscriptions = subscriptions or SubscriptionTable()
        self.msg_type = msg_type
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        return self._channel_layer or get_channel_layer()

    async def publish(self, report):
        channels = await self.subscriptions.asubscribers(report["trackId"])
        if not channels:
            return 0

        layer = self.channel_layer
        message = {
            "type": self.msg_type,
            "message": {**report, "subscriberCount": len(channels)},
        }
        results = await asyncio.gather(
            *(self._deliver(layer, name, message) for name in channels),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        for failure in failures:
            logger.warning("Dropped update for %s: %s", report["trackId"], failure)
            if isinstance(failure, TransportFailure):
                await self._drop(failure.channel_name)
        return len(channels) - len(failures)

    async def _drop(self, channel_name):
        # a channel that cannot take messages is treated as a closed connection
        try:
            await self.subscriptions.aon_connection_closed(channel_name)
        except StorageFault:
            logger.exception("Could not drop subscriptions of %s", channel_name)

    async def _deliver(self, layer, channel_name, message):
        try:
            await layer.send(channel_name, message)
        except Exception as exc:
            raise TransportFailure(channel_name, exc) from exc
