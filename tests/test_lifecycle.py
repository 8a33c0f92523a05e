"""
Request lifecycle engine against a real (SQLite) store.

State is always checked through a fresh session, so the assertions see what
was committed rather than what one session has cached.
"""

import pytest

from fleet.domain.enums import RequestStatus
from fleet.domain.errors import Conflict, InvalidTransition, NotFound
from fleet.infrastructure.repositories import EntityStore
from fleet.services.requests import RequestLifecycleEngine


async def _committed(database):
    async with database.session() as session:
        store = EntityStore(session)
        vehicle = await store.vehicles.get_by_id("v1")
        trips = await store.trips.find()
        requests = {r.id: r for r in await store.requests.find()}
        return vehicle, trips, requests


@pytest.mark.asyncio
async def test_completion_records_trip_and_accrues_mileage(
    database, fleet, engine, make_request
):
    request = await make_request(kilometers=30)

    updated = await engine.update_request(
        fleet["user"], request.id, {"status": RequestStatus.DONE}
    )

    assert updated.status == RequestStatus.DONE
    vehicle, trips, _ = await _committed(database)
    assert vehicle.mileage == 30
    assert len(trips) == 1
    trip = trips[0]
    assert trip.distance_km == 30
    assert (trip.vehicle_id, trip.driver_id) == ("v1", "d1")
    assert trip.request_id == request.id
    assert trip.notes == "Kyiv → Zhytomyr"


@pytest.mark.asyncio
async def test_second_done_is_rejected_and_mileage_unchanged(
    database, fleet, engine, make_request
):
    request = await make_request(kilometers=30)
    await engine.update_request(fleet["admin"], request.id, {"status": RequestStatus.DONE})

    with pytest.raises(InvalidTransition):
        await engine.update_request(
            fleet["admin"], request.id, {"status": RequestStatus.DONE}
        )

    vehicle, trips, _ = await _committed(database)
    assert vehicle.mileage == 30
    assert len(trips) == 1


@pytest.mark.asyncio
async def test_done_without_kilometers_creates_no_trip(
    database, fleet, engine, make_request
):
    request = await make_request(kilometers=None)

    updated = await engine.update_request(
        fleet["user"], request.id, {"status": RequestStatus.DONE}
    )

    assert updated.status == RequestStatus.DONE
    vehicle, trips, _ = await _committed(database)
    assert vehicle.mileage == 0
    assert trips == []


@pytest.mark.asyncio
async def test_in_progress_then_done_accrues_once(database, fleet, engine, make_request):
    request = await make_request(kilometers=45)

    await engine.update_request(
        fleet["user"], request.id, {"status": RequestStatus.IN_PROGRESS}
    )
    await engine.update_request(fleet["user"], request.id, {"notes": "fuel up"})
    await engine.update_request(fleet["user"], request.id, {"status": RequestStatus.DONE})

    vehicle, trips, requests = await _committed(database)
    assert vehicle.mileage == 45
    assert len(trips) == 1
    assert requests[request.id].notes == "fuel up"


@pytest.mark.asyncio
@pytest.mark.parametrize("terminal", [RequestStatus.DONE, RequestStatus.CANCELED])
async def test_terminal_requests_are_read_only(
    database, fleet, engine, make_request, terminal
):
    request = await make_request()
    await engine.update_request(fleet["user"], request.id, {"status": terminal})

    for patch in ({"notes": "edit"}, {"status": RequestStatus.PLANNED}, {"kilometers": 99}):
        with pytest.raises(InvalidTransition):
            await engine.update_request(fleet["user"], request.id, patch)
    with pytest.raises(InvalidTransition):
        await engine.delete_request(fleet["user"], request.id)

    _, _, requests = await _committed(database)
    assert requests[request.id].status == terminal
    assert requests[request.id].kilometers == 30


@pytest.mark.asyncio
async def test_cancel_creates_no_trip(database, fleet, engine, make_request):
    request = await make_request()
    await engine.update_request(fleet["user"], request.id, {"status": RequestStatus.CANCELED})

    vehicle, trips, _ = await _committed(database)
    assert vehicle.mileage == 0
    assert trips == []


@pytest.mark.asyncio
async def test_missing_vehicle_fails_whole_transition(
    database, fleet, store, engine, make_request
):
    request = await make_request()
    await store.vehicles.delete("v1")
    await store.commit()

    with pytest.raises(NotFound):
        await engine.update_request(
            fleet["user"], request.id, {"status": RequestStatus.DONE}
        )

    _, trips, requests = await _committed(database)
    assert trips == []
    assert requests[request.id].status == RequestStatus.PLANNED


@pytest.mark.asyncio
async def test_lenient_mode_records_trip_with_marker(
    database, fleet, store, locks, make_request
):
    engine = RequestLifecycleEngine(store, locks, strict_accrual=False)
    request = await make_request()
    await store.vehicles.delete("v1")
    await store.commit()

    updated = await engine.update_request(
        fleet["user"], request.id, {"status": RequestStatus.DONE}
    )

    assert updated.status == RequestStatus.DONE
    _, trips, _ = await _committed(database)
    assert len(trips) == 1
    assert "mileage not accrued" in trips[0].notes


@pytest.mark.asyncio
async def test_failure_after_status_write_rolls_everything_back(
    database, fleet, engine, make_request, monkeypatch
):
    request = await make_request()

    async def broken_create(**fields):
        raise RuntimeError("disk full")

    monkeypatch.setattr(engine.store.trips, "create", broken_create)

    with pytest.raises(RuntimeError):
        await engine.update_request(
            fleet["user"], request.id, {"status": RequestStatus.DONE}
        )

    vehicle, trips, requests = await _committed(database)
    assert vehicle.mileage == 0
    assert trips == []
    assert requests[request.id].status == RequestStatus.PLANNED


@pytest.mark.asyncio
async def test_lost_compare_and_swap_is_conflict(
    database, fleet, engine, make_request, monkeypatch
):
    request = await make_request()

    async def stale(*args, **kwargs):
        return False

    monkeypatch.setattr(engine.store.requests, "compare_and_set", stale)

    with pytest.raises(Conflict):
        await engine.update_request(
            fleet["user"], request.id, {"status": RequestStatus.DONE}
        )

    vehicle, trips, _ = await _committed(database)
    assert vehicle.mileage == 0
    assert trips == []


@pytest.mark.asyncio
async def test_unknown_request_is_not_found(fleet, engine):
    with pytest.raises(NotFound):
        await engine.update_request(fleet["user"], "nope", {"status": RequestStatus.DONE})


@pytest.mark.asyncio
async def test_moving_to_unknown_vehicle_is_not_found(database, fleet, engine, make_request):
    request = await make_request()

    with pytest.raises(NotFound):
        await engine.update_request(fleet["user"], request.id, {"vehicle_id": "ghost"})

    _, _, requests = await _committed(database)
    assert requests[request.id].vehicle_id == "v1"


class TestCreateRequest:
    @pytest.mark.asyncio
    async def test_defaults_to_planned(self, fleet, engine):
        request = await engine.create_request(
            fleet["user"],
            {"vehicle_id": "v1", "driver_id": "d1", "origin": "A", "destination": "B"},
        )
        assert request.status == RequestStatus.PLANNED
        assert request.created_at is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [RequestStatus.DONE, RequestStatus.CANCELED])
    async def test_cannot_start_terminal(self, fleet, engine, status):
        with pytest.raises(InvalidTransition):
            await engine.create_request(
                fleet["user"],
                {
                    "vehicle_id": "v1",
                    "driver_id": "d1",
                    "origin": "A",
                    "destination": "B",
                    "status": status,
                },
            )

    @pytest.mark.asyncio
    async def test_references_must_exist(self, fleet, engine):
        with pytest.raises(NotFound):
            await engine.create_request(
                fleet["user"],
                {"vehicle_id": "v1", "driver_id": "ghost", "origin": "A", "destination": "B"},
            )

    @pytest.mark.asyncio
    async def test_duplicate_id_is_conflict(self, fleet, engine, make_request):
        await make_request(id="r-fixed")
        with pytest.raises(Conflict):
            await engine.create_request(
                fleet["user"],
                {
                    "id": "r-fixed",
                    "vehicle_id": "v1",
                    "driver_id": "d1",
                    "origin": "A",
                    "destination": "B",
                },
            )

