# tracking/subscriptions.py
import logging

from channels.db import database_sync_to_async
from django.db import DatabaseError, transaction

from .exceptions import StorageFault, SubscriptionError
from .models import Subscription

logger = logging.getLogger(__name__)


class SubscriptionTable:
    """
    Which connections (channel names) watch which track ids.

    Every operation takes the connection explicitly. Mutations are atomic, and
    `subscribers()` is a single query, so a broadcast sees a subscription either
    before or after a change, never half of it.
    """

    @staticmethod
    def _clean(track_id):
        track_id = (track_id or "").strip() if isinstance(track_id, str) else ""
        if not track_id:
            raise SubscriptionError("trackId is required")
        return track_id

    def subscribe(self, channel_name, track_id):
        track_id = self._clean(track_id)
        try:
            with transaction.atomic():
                _, created = Subscription.objects.get_or_create(
                    channel_name=channel_name, track_id=track_id
                )
                count = Subscription.objects.filter(track_id=track_id).count()
        except DatabaseError as exc:
            raise StorageFault(f"could not subscribe to {track_id}") from exc
        if created:
            logger.debug("%s subscribed to %s (%d watching)", channel_name, track_id, count)
        return count

    def unsubscribe(self, channel_name, track_id):
        track_id = self._clean(track_id)
        try:
            with transaction.atomic():
                Subscription.objects.filter(channel_name=channel_name, track_id=track_id).delete()
                count = Subscription.objects.filter(track_id=track_id).count()
        except DatabaseError as exc:
            raise StorageFault(f"could not unsubscribe from {track_id}") from exc
        return count

    def on_connection_closed(self, channel_name):
        try:
            removed, _ = Subscription.objects.filter(channel_name=channel_name).delete()
        except DatabaseError as exc:
            raise StorageFault(f"could not clean up subscriptions of {channel_name}") from exc
        if removed:
            logger.debug("Dropped %d subscriptions of closed connection %s", removed, channel_name)
        return removed

    def clear_all(self):
        """Forget every subscription; channel names from a previous run are dead."""
        try:
            removed, _ = Subscription.objects.all().delete()
        except DatabaseError as exc:
            raise StorageFault("could not clear subscriptions") from exc
        if removed:
            logger.info("Cleared %d stale subscriptions", removed)
        return removed

    def subscriber_count(self, track_id):
        try:
            return Subscription.objects.filter(track_id=track_id).count()
        except DatabaseError as exc:
            raise StorageFault(f"could not count subscribers of {track_id}") from exc

    def subscribers(self, track_id):
        try:
            return list(
                Subscription.objects.filter(track_id=track_id)
                .order_by("id")
                .values_list("channel_name", flat=True)
            )
        except DatabaseError as exc:
            raise StorageFault(f"could not read subscribers of {track_id}") from exc

    # async variants for consumers and the broadcaster

    async def asubscribe(self, channel_name, track_id):
        return await database_sync_to_async(self.subscribe)(channel_name, track_id)

    async def aunsubscribe(self, channel_name, track_id):
        return await database_sync_to_async(self.unsubscribe)(channel_name, track_id)

    async def aon_connection_closed(self, channel_name):
        return await database_sync_to_async(self.on_connection_closed)(channel_name)

    async def asubscriber_count(self, track_id):
        return await database_sync_to_async(self.subscriber_count)(track_id)

    async def asubscribers(self, track_id):
        return await database_sync_to_async(self.subscribers)(track_id)


def clear_stale_subscriptions():
    """Run once when the relay process starts, before any connection exists."""
    try:
        return SubscriptionTable().clear_all()
    except StorageFault:
        logger.warning("Could not clear stale subscriptions at startup", exc_info=True)
        return 0
