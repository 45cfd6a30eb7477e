# tracking/ingest.py
import asyncio
import logging
import weakref

from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from django.db import DatabaseError, transaction
from django.utils import timezone

from . import history, registry
from .broadcast import Broadcaster
from .exceptions import LocationRejected, StorageFault
from .serializers import LocationReportSerializer, error_reason

logger = logging.getLogger(__name__)


def record_report(track_id, report):
    """
    Store the current location and its path point together; if either write
    fails neither is kept.
    """
    try:
        with transaction.atomic():
            accepted = registry.set_current(track_id, report)
            # stop reports are not position samples
            if report["isActive"]:
                history.append(track_id, report["lat"], report["lng"], report["timestamp"])
    except DatabaseError as exc:
        logger.exception("Could not commit report for %s", track_id)
        raise StorageFault(f"could not store location for {track_id}") from exc
    return registry.with_recency(accepted, report["timestamp"])


arecord_report = database_sync_to_async(record_report)


class LocationIngest:
    """
    Validates incoming reports, records them and hands them to the broadcaster.

    Reports for one track id are processed one at a time (per-track lock held
    from the registry write through publish), so the last report to arrive wins
    and subscribers see reports in the order they were accepted. Different
    track ids never wait on each other.
    """

    def __init__(self, broadcaster=None):
        self.broadcaster = broadcaster or Broadcaster()
        self._locks = weakref.WeakValueDictionary()

    def _lock_for(self, track_id):
        lock = self._locks.get(track_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[track_id] = lock
        return lock

    def validate(self, data):
        if not isinstance(data, dict):
            raise LocationRejected("report must be a JSON object")
        serializer = LocationReportSerializer(data=data)
        if not serializer.is_valid():
            raise LocationRejected(error_reason(serializer.errors))
        report = dict(serializer.validated_data)
        if report.get("timestamp") is None:
            report["timestamp"] = timezone.now()
        return report

    async def submit(self, data):
        try:
            report = self.validate(data)
        except LocationRejected as exc:
            logger.info("Rejected location report: %s", exc.reason)
            raise

        track_id = report["trackId"]
        lock = self._lock_for(track_id)
        async with lock:
            accepted = await arecord_report(track_id, report)
            try:
                await self.broadcaster.publish(accepted)
            except StorageFault:
                logger.exception("Could not fan out update for %s", track_id)

        logger.debug("Accepted report for %s (active=%s)", track_id, accepted["isActive"])
        return accepted

    async def stop(self, track_id):
        return await self.submit({"trackId": track_id, "isActive": False})

    def submit_sync(self, data):
        """Synchronous helper (for sync contexts)."""
        return async_to_sync(self.submit)(data)


_ingest = None


def get_ingest():
    global _ingest
    if _ingest is None:
        _ingest = LocationIngest()
    return _ingest
