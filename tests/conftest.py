from datetime import timedelta

import pytest
from django.utils import timezone


@pytest.fixture(autouse=True)
def in_memory_channel_layer(settings):
    settings.CHANNEL_LAYERS = {
        "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"},
    }


@pytest.fixture(autouse=True)
def fresh_ingest(monkeypatch):
    from tracking import ingest

    monkeypatch.setattr(ingest, "_ingest", None)


@pytest.fixture
def report():
    """Build a validated-looking report dict for registry calls."""
    def make(track_id="TRK-TEST", lat=18.52, lng=73.86, active=True, age=timedelta(0), **extra):
        data = {
            "trackId": track_id,
            "lat": lat,
            "lng": lng,
            "timestamp": timezone.now() - age,
            "isActive": active,
        }
        data.update(extra)
        return data
    return make


class RecordingBroadcaster:
    def __init__(self):
        self.published = []

    async def publish(self, report):
        self.published.append(report)
        return 0


@pytest.fixture
def recorder():
    return RecordingBroadcaster()
