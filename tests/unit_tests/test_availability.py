"""Tests for slot availability and conflict detection."""

from datetime import date, datetime, timedelta

from app.config import CLOSING_HOUR, OPENING_HOUR
from app.services.availability import build_day_slots, find_conflict, overlaps
from tests.mocks.models import (
    BADMINTON_GROUND,
    FOOTBALL_GROUND,
    MOCK_USER,
    held,
    make_selection,
    next_weekday,
)

DAY = date(2030, 6, 5)
BEFORE_DAY = datetime(2030, 6, 1, 12, 0)


def _slot(slots, start: str):
    return next(s for s in slots if s.start_time == start)


def _conflict(selection, held_slots, **overrides):
    kwargs = {
        "user_id": MOCK_USER.id,
        "booking_type": "per-person",
        "participant_count": 1,
        "max_capacity": 4,
        "per_person_allowed": True,
    }
    kwargs.update(overrides)
    return find_conflict(selection, held_slots, **kwargs)


class TestOverlaps:
    def test_adjacent_slots_do_not_overlap(self):
        assert not overlaps("10:00", "11:00", "11:00", "12:00")
        assert not overlaps("11:00", "12:00", "10:00", "11:00")

    def test_partial_and_contained_overlap(self):
        assert overlaps("10:00", "11:00", "10:30", "11:30")
        assert overlaps("09:00", "12:00", "10:00", "11:00")


class TestBuildDaySlots:
    def test_covers_opening_hours(self):
        slots = build_day_slots(
            7, DAY, [], max_capacity=4, per_person_allowed=True,
            peak_times={"18:00"}, now=BEFORE_DAY,
        )
        assert len(slots) == CLOSING_HOUR - OPENING_HOUR
        assert slots[0].id == f"7-{DAY.isoformat()}-{OPENING_HOUR}"
        assert all(s.is_available and s.available_capacity == 4 for s in slots)
        assert _slot(slots, "18:00").is_peak_hour
        assert not _slot(slots, "10:00").is_peak_hour

    def test_per_person_bookings_reduce_capacity(self):
        slots = build_day_slots(
            1, DAY, [held("10:00", "11:00", participants=3)],
            max_capacity=4, per_person_allowed=True, peak_times=set(), now=BEFORE_DAY,
        )
        slot = _slot(slots, "10:00")
        assert slot.booked_count == 3
        assert slot.available_capacity == 1
        assert slot.is_available
        assert not slot.has_full_ground_booking

    def test_full_ground_booking_blocks_slot(self):
        slots = build_day_slots(
            1, DAY, [held("10:00", "11:00", booking_type="full-ground")],
            max_capacity=4, per_person_allowed=True, peak_times=set(), now=BEFORE_DAY,
        )
        slot = _slot(slots, "10:00")
        assert slot.has_full_ground_booking
        assert slot.available_capacity == 0
        assert not slot.is_available

    def test_any_booking_is_exclusive_without_per_person(self):
        slots = build_day_slots(
            2, DAY, [held("10:00", "11:00")],
            max_capacity=22, per_person_allowed=False, peak_times=set(), now=BEFORE_DAY,
        )
        assert not _slot(slots, "10:00").is_available

    def test_started_slots_are_unavailable(self):
        now = datetime(2030, 6, 5, 12, 30)
        slots = build_day_slots(
            1, DAY, [], max_capacity=4, per_person_allowed=True, peak_times=set(), now=now,
        )
        assert not _slot(slots, "12:00").is_available
        assert _slot(slots, "13:00").is_available


class TestFindConflict:
    def test_free_slot(self):
        assert _conflict(make_selection(DAY, "10:00"), []) is None

    def test_capacity_exceeded(self):
        reason = _conflict(
            make_selection(DAY, "10:00"),
            [held("10:00", "11:00", participants=3)],
            participant_count=2,
        )
        assert "1 spot(s) left" in reason

    def test_fits_remaining_capacity(self):
        assert _conflict(
            make_selection(DAY, "10:00"),
            [held("10:00", "11:00", participants=3)],
        ) is None

    def test_per_person_blocked_by_full_ground(self):
        reason = _conflict(
            make_selection(DAY, "10:00"),
            [held("10:00", "11:00", booking_type="full-ground")],
        )
        assert "full ground" in reason

    def test_full_ground_needs_empty_slot(self):
        reason = _conflict(
            make_selection(DAY, "10:00"),
            [held("10:00", "11:00")],
            booking_type="full-ground",
        )
        assert "already booked" in reason

    def test_full_ground_own_duplicate(self):
        reason = _conflict(
            make_selection(DAY, "10:00"),
            [held("10:00", "11:00", booking_type="full-ground", user_id=MOCK_USER.id)],
            booking_type="full-ground",
        )
        assert reason.startswith("You already have a booking")

    def test_adjacent_booking_is_no_conflict(self):
        assert _conflict(
            make_selection(DAY, "11:00"),
            [held("10:00", "11:00", booking_type="full-ground")],
            booking_type="full-ground",
        ) is None


class TestSlotsEndpoint:
    def test_slots_for_seeded_ground(self, unauthed_client):
        day = next_weekday(2)
        resp = unauthed_client.get(
            f"/api/facilities/{BADMINTON_GROUND}/slots", params={"date": day.isoformat()}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["max_capacity"] == 4
        assert len(data["slots"]) == CLOSING_HOUR - OPENING_HOUR
        peak = {s["start_time"] for s in data["slots"] if s["is_peak_hour"]}
        assert peak == {"17:00", "18:00", "19:00", "20:00"}

    def test_booking_shows_up_in_slots(self, client):
        day = next_weekday(2)
        resp = client.post(
            "/api/bookings",
            json={
                "ground_id": FOOTBALL_GROUND,
                "booking_type": "full-ground",
                "slots": [{"date": day.isoformat(), "start_time": "09:00", "end_time": "10:00"}],
            },
        )
        assert resp.status_code == 201

        resp = client.get(f"/api/facilities/{FOOTBALL_GROUND}/slots", params={"date": day.isoformat()})
        slot = _slot_json(resp.json()["slots"], "09:00")
        assert slot["has_full_ground_booking"] is True
        assert slot["is_available"] is False

    def test_unknown_ground(self, unauthed_client):
        day = date.today() + timedelta(days=1)
        resp = unauthed_client.get("/api/facilities/999/slots", params={"date": day.isoformat()})
        assert resp.status_code == 404


def _slot_json(slots: list[dict], start: str) -> dict:
    return next(s for s in slots if s["start_time"] == start)
