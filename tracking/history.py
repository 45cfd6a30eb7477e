# tracking/history.py
import logging
from datetime import timedelta

from channels.db import database_sync_to_async
from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone
from geopy.distance import geodesic

from .exceptions import HistoryError, StorageFault
from .models import PathPoint

logger = logging.getLogger(__name__)

JITTER_METERS = 3.0


def horizon_hours():
    return float(settings.TRACKING_PATH_HORIZON_HOURS)


def append(track_id, lat, lng, timestamp=None):
    try:
        PathPoint.objects.create(
            track_id=track_id, lat=lat, lng=lng, timestamp=timestamp or timezone.now()
        )
    except DatabaseError as exc:
        logger.exception("Could not append path point for %s", track_id)
        raise StorageFault(f"could not append path point for {track_id}") from exc


def effective_window(window_hours):
    """The window `read` actually serves: positive, never past the retention horizon."""
    try:
        window_hours = float(window_hours)
    except (TypeError, ValueError):
        raise HistoryError("hours must be a number")
    if not window_hours > 0:
        raise HistoryError("hours must be positive")
    return min(window_hours, horizon_hours())


def read(track_id, window_hours, now=None):
    """Points of `track_id` from the last `window_hours`, oldest first."""
    window_hours = effective_window(window_hours)
    since = (now or timezone.now()) - timedelta(hours=window_hours)
    try:
        points = PathPoint.objects.filter(track_id=track_id, timestamp__gte=since).order_by("timestamp", "id")
        return [p.as_dict() for p in points]
    except DatabaseError as exc:
        raise StorageFault(f"could not read path of {track_id}") from exc


def prune(horizon=None, now=None):
    """Delete points older than `horizon` (a timedelta) across all tracks."""
    if horizon is None:
        horizon = timedelta(hours=horizon_hours())
    cutoff = (now or timezone.now()) - horizon
    try:
        removed, _ = PathPoint.objects.filter(timestamp__lt=cutoff).delete()
    except DatabaseError as exc:
        raise StorageFault("could not prune path history") from exc
    logger.info("Pruned %d path points older than %s", removed, cutoff.isoformat())
    return removed


def path_distance(points):
    """Geodesic length of a path in metres; steps under JITTER_METERS are GPS noise."""
    total = 0.0
    prev = None
    for p in points:
        here = (p["lat"], p["lng"])
        if prev is not None:
            d = geodesic(prev, here).meters
            if d > JITTER_METERS:
                total += d
        prev = here
    return round(total, 2)


aread = database_sync_to_async(read)
