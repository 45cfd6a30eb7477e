from datetime import timedelta

import pytest
from django.db import DatabaseError
from django.utils import timezone

from tracking import registry
from tracking.exceptions import StorageFault, TrackNotFound
from tracking.models import Track


@pytest.mark.django_db
def test_generate_issues_unique_prefixed_ids():
    ids = {registry.generate() for _ in range(50)}
    assert len(ids) == 50
    for track_id in ids:
        assert track_id.startswith("TRK-")
        assert len(track_id) == len("TRK-") + 24
    assert Track.objects.count() == 50


@pytest.mark.django_db
def test_generate_storage_fault(monkeypatch):
    def boom(**kwargs):
        raise DatabaseError("db down")

    monkeypatch.setattr(Track.objects, "create", boom)
    with pytest.raises(StorageFault):
        registry.generate()


@pytest.mark.django_db
def test_get_current_unknown_id():
    with pytest.raises(TrackNotFound):
        registry.get_current("TRK-NEVER")


@pytest.mark.django_db
def test_get_current_generated_but_never_reported():
    track_id = registry.generate()
    with pytest.raises(TrackNotFound):
        registry.get_current(track_id)


@pytest.mark.django_db
def test_set_then_get_current(report):
    registry.set_current("TRK-ABC123", report("TRK-ABC123", speed=4.5, heading=90))
    current = registry.get_current("TRK-ABC123")
    assert current["lat"] == 18.52
    assert current["lng"] == 73.86
    assert current["speed"] == 4.5
    assert current["heading"] == 90
    assert current["isActive"] is True
    assert current["isRecent"] is True


@pytest.mark.django_db
def test_set_current_overwrites(report):
    registry.set_current("TRK-A", report("TRK-A", lat=10.0, lng=20.0, speed=3.0))
    registry.set_current("TRK-A", report("TRK-A", lat=11.0, lng=21.0))
    current = registry.get_current("TRK-A")
    assert (current["lat"], current["lng"]) == (11.0, 21.0)
    # superseded, not merged
    assert current["speed"] is None


@pytest.mark.django_db
def test_inactive_report_is_found(report):
    registry.set_current("TRK-A", report("TRK-A", lat=None, lng=None, active=False))
    current = registry.get_current("TRK-A")
    assert current["isActive"] is False


@pytest.mark.django_db
def test_stale_report_is_not_recent(report):
    registry.set_current("TRK-A", report("TRK-A", age=timedelta(minutes=5)))
    assert registry.get_current("TRK-A")["isRecent"] is False


def test_is_recent_threshold(settings):
    settings.TRACKING_FRESHNESS_SECONDS = 30
    now = timezone.now()
    assert registry.is_recent(now - timedelta(seconds=10), now=now)
    assert not registry.is_recent(now - timedelta(seconds=31), now=now)
    assert not registry.is_recent(None)
