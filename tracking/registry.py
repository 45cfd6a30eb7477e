# tracking/registry.py
"""
Track registry: issues track ids and keeps the latest accepted report per id.
"""
import logging
import secrets

from channels.db import database_sync_to_async
from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from .exceptions import StorageFault, TrackNotFound
from .models import Track

logger = logging.getLogger(__name__)

TRACK_ID_PREFIX = "TRK-"


def generate():
    # 12 random bytes -> 96 bits of entropy
    track_id = f"{TRACK_ID_PREFIX}{secrets.token_hex(12).upper()}"
    try:
        Track.objects.create(track_id=track_id)
    except DatabaseError as exc:
        logger.exception("Could not store new track id")
        raise StorageFault("could not store new track id") from exc
    logger.info("Issued track id %s", track_id)
    return track_id


def is_recent(timestamp, now=None):
    """Whether a report stamped `timestamp` is still fresh enough to show as live."""
    if timestamp is None:
        return False
    now = now or timezone.now()
    return (now - timestamp).total_seconds() < settings.TRACKING_FRESHNESS_SECONDS


def get_current(track_id):
    try:
        track = Track.objects.filter(track_id=track_id, last_report_at__isnull=False).first()
    except DatabaseError as exc:
        raise StorageFault(f"could not read track {track_id}") from exc
    if track is None:
        raise TrackNotFound(track_id)
    return with_recency(track.as_report(), track.timestamp)


def with_recency(report, timestamp):
    """Add the derived freshness fields observers use to grey out stale pins."""
    report["isRecent"] = is_recent(timestamp)
    report["freshnessSeconds"] = settings.TRACKING_FRESHNESS_SECONDS
    return report


def set_current(track_id, report):
    """
    Overwrite the current location of `track_id` with a validated report.
    Creates the track row if the id was issued elsewhere.
    """
    defaults = {
        "lat": report.get("lat"),
        "lng": report.get("lng"),
        "speed": report.get("speed"),
        "accuracy": report.get("accuracy"),
        "heading": report.get("heading"),
        "timestamp": report["timestamp"],
        "is_active": report["isActive"],
        "last_report_at": timezone.now(),
    }
    try:
        track, _ = Track.objects.update_or_create(track_id=track_id, defaults=defaults)
    except DatabaseError as exc:
        logger.exception("Could not store location for %s", track_id)
        raise StorageFault(f"could not store location for {track_id}") from exc
    return track.as_report()


agenerate = database_sync_to_async(generate)
aget_current = database_sync_to_async(get_current)
