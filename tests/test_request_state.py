"""Unit tests for request state transitions and lifecycle planning."""

from datetime import datetime, timezone

import pytest

from fleet.domain.entities import TransportRequest
from fleet.domain.enums import RequestStatus
from fleet.domain.errors import InvalidTransition, ValidationError
from fleet.domain.lifecycle import accrues, plan_update

DEPART = datetime(2026, 3, 1, 8, 30, tzinfo=timezone.utc)


def _request(status=RequestStatus.PLANNED, kilometers=30, **kw) -> TransportRequest:
    return TransportRequest(
        id="r1",
        vehicle_id="v1",
        driver_id="d1",
        origin="Kyiv",
        destination="Lviv",
        depart_at=kw.pop("depart_at", DEPART),
        kilometers=kilometers,
        status=status,
        **kw,
    )


class TestRequestStateMachine:
    def test_initial_status_is_planned(self):
        assert TransportRequest(id="r", vehicle_id="v", driver_id="d").status == RequestStatus.PLANNED

    # ── Valid transitions ─────────────────────────────────────────

    @pytest.mark.parametrize(
        "start, target",
        [
            (RequestStatus.PLANNED, RequestStatus.IN_PROGRESS),
            (RequestStatus.PLANNED, RequestStatus.DONE),
            (RequestStatus.PLANNED, RequestStatus.CANCELED),
            (RequestStatus.IN_PROGRESS, RequestStatus.DONE),
            (RequestStatus.IN_PROGRESS, RequestStatus.CANCELED),
        ],
    )
    def test_allowed(self, start, target):
        request = _request(status=start)
        request.transition_to(target)
        assert request.status == target

    def test_same_status_is_not_a_transition(self):
        request = _request(status=RequestStatus.IN_PROGRESS)
        request.transition_to(RequestStatus.IN_PROGRESS)
        assert request.status == RequestStatus.IN_PROGRESS

    # ── Invalid transitions ───────────────────────────────────────

    def test_in_progress_back_to_planned_fails(self):
        request = _request(status=RequestStatus.IN_PROGRESS)
        with pytest.raises(InvalidTransition):
            request.transition_to(RequestStatus.PLANNED)

    @pytest.mark.parametrize("terminal", [RequestStatus.DONE, RequestStatus.CANCELED])
    @pytest.mark.parametrize("target", list(RequestStatus))
    def test_terminal_to_anything_fails(self, terminal, target):
        request = _request(status=terminal)
        with pytest.raises(InvalidTransition):
            request.transition_to(target)


class TestPlanUpdate:
    def test_completion_plans_trip_from_request(self):
        plan = plan_update(_request(), {"status": RequestStatus.DONE})
        assert plan.completes
        assert plan.trip is not None
        assert plan.trip.vehicle_id == "v1"
        assert plan.trip.driver_id == "d1"
        assert plan.trip.distance_km == 30
        assert plan.trip.date == DEPART
        assert plan.trip.notes == "Kyiv → Lviv"
        assert plan.trip.request_id == "r1"

    def test_kilometers_from_the_same_patch_are_used(self):
        plan = plan_update(
            _request(kilometers=None), {"status": RequestStatus.DONE, "kilometers": 12}
        )
        assert plan.trip.distance_km == 12

    def test_missing_departure_falls_back_to_now(self):
        now = datetime(2026, 5, 5, tzinfo=timezone.utc)
        plan = plan_update(_request(depart_at=None), {"status": "done"}, now=now)
        assert plan.trip.date == now

    @pytest.mark.parametrize("kilometers", [None, 0])
    def test_no_trip_without_positive_kilometers(self, kilometers):
        plan = plan_update(_request(kilometers=kilometers), {"status": RequestStatus.DONE})
        assert plan.completes
        assert plan.trip is None

    def test_non_status_patch_plans_no_trip(self):
        plan = plan_update(_request(), {"notes": "bring documents"})
        assert not plan.status_changed
        assert plan.trip is None
        assert plan.request.notes == "bring documents"

    def test_start_trip_plans_no_trip(self):
        plan = plan_update(_request(), {"status": RequestStatus.IN_PROGRESS})
        assert plan.status_changed
        assert plan.trip is None

    def test_resending_done_is_rejected(self):
        with pytest.raises(InvalidTransition):
            plan_update(_request(status=RequestStatus.DONE), {"status": RequestStatus.DONE})

    def test_terminal_request_rejects_field_edits(self):
        with pytest.raises(InvalidTransition):
            plan_update(_request(status=RequestStatus.CANCELED), {"notes": "late"})

    def test_required_fields_cannot_be_cleared(self):
        with pytest.raises(ValidationError):
            plan_update(_request(), {"vehicle_id": None})

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            plan_update(_request(), {"mileage": 5})

    def test_invalid_status_value_rejected(self):
        with pytest.raises(ValueError):
            plan_update(_request(), {"status": "finished"})

    def test_input_request_is_not_mutated(self):
        request = _request()
        plan_update(request, {"status": RequestStatus.DONE, "notes": "x"})
        assert request.status == RequestStatus.PLANNED
        assert request.notes is None


@pytest.mark.parametrize(
    "value, expected",
    [(30, True), (1, True), (0, False), (None, False), (-5, False), (True, False), (2.5, False)],
)
def test_accrues(value, expected):
    assert accrues(value) is expected
