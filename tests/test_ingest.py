import asyncio
from datetime import datetime, timezone as dt_timezone

import pytest

from tracking import history, registry
from tracking.exceptions import LocationRejected, StorageFault, TrackNotFound
from tracking.ingest import LocationIngest, get_ingest


@pytest.fixture
def ingest(recorder):
    return LocationIngest(broadcaster=recorder)


@pytest.mark.parametrize("data, reason", [
    ({"trackId": "", "lat": 18.5, "lng": 73.8}, "trackId"),
    ({"trackId": "   ", "lat": 18.5, "lng": 73.8}, "trackId"),
    ({"lat": 18.5, "lng": 73.8}, "trackId"),
    ({"trackId": "TRK-A", "lat": 90.5, "lng": 73.8}, "lat"),
    ({"trackId": "TRK-A", "lat": 18.5, "lng": -180.1}, "lng"),
    ({"trackId": "TRK-A", "lat": 0, "lng": 0, "isActive": True}, "(0, 0)"),
    ({"trackId": "TRK-A", "lat": 0, "lng": 0}, "(0, 0)"),
    ({"trackId": "TRK-A", "lat": 18.5}, "both lat and lng"),
    ({"trackId": "TRK-A", "lat": "north", "lng": 73.8}, "lat"),
])
def test_validate_rejects(ingest, data, reason):
    with pytest.raises(LocationRejected) as excinfo:
        ingest.validate(data)
    assert reason in excinfo.value.reason


def test_validate_rejects_non_object(ingest):
    with pytest.raises(LocationRejected):
        ingest.validate(["TRK-A", 1, 2])


def test_validate_stop_report_drops_coordinates(ingest):
    report = ingest.validate({"trackId": "TRK-A", "lat": 0, "lng": 0, "isActive": False})
    assert report["isActive"] is False
    assert report["lat"] is None and report["lng"] is None


def test_validate_stamps_receipt_time(ingest):
    report = ingest.validate({"trackId": "TRK-A", "lat": 1.5, "lng": 2.5})
    assert report["timestamp"] is not None
    assert report["isActive"] is True


def test_validate_keeps_client_timestamp(ingest):
    report = ingest.validate({
        "trackId": "TRK-A", "lat": 1.5, "lng": 2.5, "timestamp": "2026-10-19T08:30:00Z",
    })
    assert report["timestamp"] == datetime(2026, 10, 19, 8, 30, tzinfo=dt_timezone.utc)


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_submit_then_get_current(ingest, recorder):
    accepted = await ingest.submit({"trackId": "TRK-A", "lat": 18.52, "lng": 73.86, "speed": 3.2})
    current = await registry.aget_current("TRK-A")
    assert (current["lat"], current["lng"]) == (18.52, 73.86)
    assert current["speed"] == 3.2
    assert recorder.published == [accepted]
    assert len(await history.aread("TRK-A", 24)) == 1


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_track_scenario_with_stop_report(ingest, recorder):
    track_id = await registry.agenerate()

    await ingest.submit({"trackId": track_id, "lat": 18.52, "lng": 73.86, "isActive": True})
    current = await registry.aget_current(track_id)
    assert (current["lat"], current["lng"], current["isActive"]) == (18.52, 73.86, True)

    await ingest.submit({"trackId": track_id, "lat": 0, "lng": 0, "isActive": False})
    current = await registry.aget_current(track_id)
    assert current["isActive"] is False

    path = await history.aread(track_id, 24)
    assert [(p["lat"], p["lng"]) for p in path] == [(18.52, 73.86)]
    assert [r["isActive"] for r in recorder.published] == [True, False]


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_rejected_report_is_not_stored_or_published(ingest, recorder):
    with pytest.raises(LocationRejected):
        await ingest.submit({"trackId": "TRK-A", "lat": 0, "lng": 0})
    with pytest.raises(TrackNotFound):
        await registry.aget_current("TRK-A")
    assert recorder.published == []


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_reports_for_one_track_keep_their_order(ingest, recorder):
    await asyncio.gather(
        ingest.submit({"trackId": "TRK-A", "lat": 1.0, "lng": 1.0}),
        ingest.submit({"trackId": "TRK-A", "lat": 2.0, "lng": 2.0}),
        ingest.submit({"trackId": "TRK-A", "lat": 3.0, "lng": 3.0}),
    )
    assert [r["lat"] for r in recorder.published] == [1.0, 2.0, 3.0]
    assert (await registry.aget_current("TRK-A"))["lat"] == 3.0


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_tracks_do_not_affect_each_other(ingest):
    await ingest.submit({"trackId": "TRK-A", "lat": 1.0, "lng": 1.0})
    await ingest.submit({"trackId": "TRK-B", "lat": 2.0, "lng": 2.0})
    await ingest.submit({"trackId": "TRK-A", "lat": 3.0, "lng": 3.0})

    assert (await registry.aget_current("TRK-B"))["lat"] == 2.0
    assert [p["lat"] for p in await history.aread("TRK-B", 24)] == [2.0]
    assert [p["lat"] for p in await history.aread("TRK-A", 24)] == [1.0, 3.0]


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_storage_fault_propagates(ingest, recorder, monkeypatch):
    def down(track_id, report):
        raise StorageFault("db down")

    monkeypatch.setattr(registry, "set_current", down)
    with pytest.raises(StorageFault):
        await ingest.submit({"trackId": "TRK-A", "lat": 1.0, "lng": 1.0})
    assert recorder.published == []


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_failed_path_append_leaves_current_location_untouched(ingest, recorder, monkeypatch):
    await ingest.submit({"trackId": "TRK-A", "lat": 1.0, "lng": 1.0})

    def down(*args, **kwargs):
        raise StorageFault("path store down")

    monkeypatch.setattr(history, "append", down)
    with pytest.raises(StorageFault):
        await ingest.submit({"trackId": "TRK-A", "lat": 2.0, "lng": 2.0})

    assert (await registry.aget_current("TRK-A"))["lat"] == 1.0
    assert len(recorder.published) == 1


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_subscriber_lookup_fault_keeps_report_accepted(monkeypatch):
    class BrokenBroadcaster:
        async def publish(self, report):
            raise StorageFault("subscriptions unavailable")

    ingest = LocationIngest(broadcaster=BrokenBroadcaster())
    accepted = await ingest.submit({"trackId": "TRK-A", "lat": 1.0, "lng": 1.0})
    assert accepted["trackId"] == "TRK-A"
    assert (await registry.aget_current("TRK-A"))["lat"] == 1.0


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_stop_helper(ingest):
    await ingest.submit({"trackId": "TRK-A", "lat": 1.0, "lng": 1.0})
    stopped = await ingest.stop("TRK-A")
    assert stopped["isActive"] is False
    assert stopped["lat"] is None


def test_get_ingest_is_shared():
    assert get_ingest() is get_ingest()


@pytest.mark.django_db(transaction=True)
def test_submit_sync(recorder):
    ingest = LocationIngest(broadcaster=recorder)
    accepted = ingest.submit_sync({"trackId": "TRK-A", "lat": 5.0, "lng": 6.0})
    assert accepted["lat"] == 5.0
