# tracking/views.py
import json
import logging

from django.db import DatabaseError
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from . import history, registry
from .exceptions import HistoryError, LocationRejected, StorageFault, TrackNotFound
from .ingest import get_ingest
from .models import TrackingSession
from .serializers import TrackingSessionSerializer, error_reason

logger = logging.getLogger(__name__)


def _read_json(request):
    try:
        return json.loads(request.body.decode() or "{}")
    except (UnicodeDecodeError, ValueError):
        return None


@csrf_exempt
async def generate_track(request):
    if request.method != "POST":
        return JsonResponse({"error": "POST only"}, status=405)
    try:
        track_id = await registry.agenerate()
    except StorageFault as exc:
        return JsonResponse({"error": str(exc)}, status=503)
    return JsonResponse({"trackId": track_id}, status=201)


@csrf_exempt
async def post_location(request):
    """
    Async POST endpoint:
    JSON: { "trackId": "TRK-...", "lat": 18.52, "lng": 73.86, "speed": 0,
            "accuracy": 5, "heading": 90, "timestamp": "ISO8601", "isActive": true }
    """
    if request.method != "POST":
        return JsonResponse({"error": "POST only"}, status=405)

    data = _read_json(request)
    if data is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    try:
        accepted = await get_ingest().submit(data)
    except LocationRejected as exc:
        return JsonResponse({"error": exc.reason}, status=400)
    except StorageFault as exc:
        return JsonResponse({"error": str(exc)}, status=503)

    return JsonResponse({"status": "ok", "data": accepted})


@csrf_exempt
async def deactivate_location(request, track_id):
    if request.method != "POST":
        return JsonResponse({"error": "POST only"}, status=405)
    try:
        accepted = await get_ingest().stop(track_id)
    except LocationRejected as exc:
        return JsonResponse({"error": exc.reason}, status=400)
    except StorageFault as exc:
        return JsonResponse({"error": str(exc)}, status=503)
    return JsonResponse({"status": "ok", "data": accepted})


async def get_location(request, track_id):
    if request.method != "GET":
        return JsonResponse({"error": "GET only"}, status=405)
    try:
        report = await registry.aget_current(track_id)
    except TrackNotFound:
        return JsonResponse({"error": "Track ID not found"}, status=404)
    except StorageFault as exc:
        return JsonResponse({"error": str(exc)}, status=503)
    return JsonResponse(report)


async def get_path(request, track_id):
    if request.method != "GET":
        return JsonResponse({"error": "GET only"}, status=405)
    try:
        hours = history.effective_window(request.GET.get("hours", "24"))
        points = await history.aread(track_id, hours)
    except HistoryError as exc:
        return JsonResponse({"error": str(exc)}, status=400)
    except StorageFault as exc:
        return JsonResponse({"error": str(exc)}, status=503)
    return JsonResponse({
        "trackId": track_id,
        "hours": hours,
        "points": points,
        "distanceM": history.path_distance(points),
    })


@csrf_exempt
def tracking_session(request, session_id):
    """Saved list of track ids a map viewer follows."""
    if request.method == "GET":
        try:
            session = TrackingSession.objects.filter(session_id=session_id).first()
        except DatabaseError:
            logger.exception("Could not load session %s", session_id)
            return JsonResponse({"error": "session store unavailable"}, status=503)
        tracked = session.tracked_users if session else []
        return JsonResponse({"sessionId": session_id, "trackedUsers": tracked})

    if request.method not in ("PUT", "POST"):
        return JsonResponse({"error": "GET, PUT or POST only"}, status=405)

    data = _read_json(request)
    if data is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)
    serializer = TrackingSessionSerializer(data=data)
    if not serializer.is_valid():
        return JsonResponse({"error": error_reason(serializer.errors)}, status=400)

    tracked = [dict(u) for u in serializer.validated_data["trackedUsers"]]
    try:
        TrackingSession.objects.update_or_create(
            session_id=session_id, defaults={"tracked_users": tracked}
        )
    except DatabaseError:
        logger.exception("Could not save session %s", session_id)
        return JsonResponse({"error": "session store unavailable"}, status=503)
    return JsonResponse({"sessionId": session_id, "trackedUsers": tracked})
