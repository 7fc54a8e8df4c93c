"""Integration tests: availability, validation, and writes through the async operations."""

import asyncio
import random
from datetime import datetime, timezone

import pytest

from barbershop.errors import FormatError, NotFoundError
from barbershop.schemas.booking_schema import Barber, BookingStatus
from barbershop.schemas.company_schema import Holiday, Shift
from barbershop.scheduling.conflicts import BookingConflictChecker
from barbershop.tools.booking import BookingOperations
from barbershop.tools.store import InMemoryBookingStore
from tests.conftest import (
    BARBER_ID,
    OTHER_BARBER_ID,
    TODAY,
    TOMORROW,
    FixedClock,
    make_booking,
    make_config,
    make_store,
)


class StaleReadStore(InMemoryBookingStore):
    """Store whose booking reads miss rows another writer just committed."""

    def get_bookings_for_barber_on_date(self, barber_id, day):
        return []


def _stale_ops(clock):
    store = StaleReadStore(
        config=make_config(), barbers=[Barber(id=BARBER_ID, name="Ali")], clock=clock
    )
    store.insert_booking(make_booking("10:00", 30, booking_id="winner"))
    return BookingOperations(store, clock=clock), store


class TestValidateAndBook:
    @pytest.mark.asyncio
    async def test_creates_pending_booking(self, ops, store):
        result = await ops.validate_and_book(BARBER_ID, "2025-09-11", "10:00", ["haircut"], "cust-1")
        assert result["success"]
        booking = result["booking"]
        assert booking["status"] == "pending"
        assert booking["confirmation_code"].startswith("BK-")
        assert booking["confirmation_code"] in result["message"]
        assert booking["total_duration_minutes"] == 30
        assert len(store.all_bookings()) == 1

    @pytest.mark.asyncio
    async def test_services_summed(self, ops):
        result = await ops.validate_and_book(
            BARBER_ID, TOMORROW, "11:00", ["haircut", "beard-trim"], "cust-1"
        )
        assert result["success"]
        assert result["booking"]["total_duration_minutes"] == 45
        assert result["booking"]["total_price"] == "7.500"

    @pytest.mark.asyncio
    async def test_combined_services_past_closing(self, ops):
        result = await ops.validate_and_book(
            BARBER_ID, TOMORROW, "11:30", ["haircut", "beard-trim"], "cust-1"
        )
        assert not result["success"]
        assert result["rejection"]["reason"] == "SHOP_CLOSED"

    @pytest.mark.asyncio
    async def test_overlap_is_slot_taken(self, ops):
        await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "cust-1")
        result = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:15", ["beard-trim"], "cust-2")
        assert not result["success"]
        assert result["rejection"]["reason"] == "SLOT_TAKEN"
        assert result["message"] == result["rejection"]["message"]

    @pytest.mark.asyncio
    async def test_back_to_back_bookings(self, ops):
        first = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "cust-1")
        second = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:30", ["haircut"], "cust-2")
        assert first["success"] and second["success"]

    @pytest.mark.asyncio
    async def test_advance_notice(self, ops):
        result = await ops.validate_and_book(BARBER_ID, TODAY, "10:30", ["haircut"], "cust-1")
        assert result["rejection"]["reason"] == "ADVANCE_NOTICE"

    @pytest.mark.asyncio
    async def test_booked_slot_disappears_from_availability(self, ops):
        await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "cust-1")
        listing = await ops.get_availability(BARBER_ID, TOMORROW, 30)
        taken = [s["start_time"] for s in listing["slots"] if not s["available"]]
        assert taken == ["10:00"]

    @pytest.mark.asyncio
    async def test_unknown_service(self, ops):
        with pytest.raises(NotFoundError, match="Service 'perm' not found"):
            await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["perm"], "cust-1")

    @pytest.mark.asyncio
    async def test_unknown_barber(self, ops):
        with pytest.raises(NotFoundError):
            await ops.validate_and_book("ghost", TOMORROW, "10:00", ["haircut"], "cust-1")

    @pytest.mark.asyncio
    async def test_empty_services(self, ops):
        with pytest.raises(FormatError):
            await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", [], "cust-1")

    @pytest.mark.asyncio
    async def test_malformed_time(self, ops):
        with pytest.raises(FormatError):
            await ops.validate_and_book(BARBER_ID, TOMORROW, "10.00", ["haircut"], "cust-1")


class TestRaceConditions:
    @pytest.mark.asyncio
    async def test_constraint_violation_reported_as_slot_taken(self):
        ops, store = _stale_ops(FixedClock())
        result = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "late")
        assert not result["success"]
        assert result["rejection"]["reason"] == "SLOT_TAKEN"
        assert [b.id for b in store.all_bookings()] == ["winner"]

    @pytest.mark.asyncio
    async def test_reschedule_race_reported_as_slot_taken(self):
        ops, store = _stale_ops(FixedClock())
        store.insert_booking(make_booking("11:00", 30, booking_id="mover"))
        result = await ops.reschedule_booking("mover", TOMORROW, "10:00")
        assert result["rejection"]["reason"] == "SLOT_TAKEN"
        assert store.get_booking("mover").appointment_time == "11:00"

    @pytest.mark.asyncio
    async def test_concurrent_requests_book_once(self, ops, store):
        results = await asyncio.gather(*[
            ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], f"cust-{i}")
            for i in range(5)
        ])
        assert sum(1 for r in results if r["success"]) == 1
        assert all(r["rejection"]["reason"] == "SLOT_TAKEN" for r in results if not r["success"])
        assert len(store.get_bookings_for_barber_on_date(BARBER_ID, TOMORROW)) == 1

    @pytest.mark.asyncio
    async def test_concurrent_requests_for_different_barbers(self, ops):
        results = await asyncio.gather(
            ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "a"),
            ops.validate_and_book(OTHER_BARBER_ID, TOMORROW, "10:00", ["haircut"], "b"),
        )
        assert all(r["success"] for r in results)


class TestReschedule:
    @pytest.mark.asyncio
    async def test_may_overlap_own_slot(self, ops):
        booked = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "c")
        result = await ops.reschedule_booking(booked["booking"]["id"], TOMORROW, "10:15")
        assert result["success"]
        assert result["booking"]["appointment_time"] == "10:15"

    @pytest.mark.asyncio
    async def test_padded_time_is_stored_normalized(self, ops, store):
        booked = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "c")
        booking_id = booked["booking"]["id"]
        result = await ops.reschedule_booking(booking_id, TOMORROW, " 11:00 ")
        assert result["booking"]["appointment_time"] == "11:00"
        assert result["message"].endswith("at 11:00.")
        assert store.get_booking(booking_id).appointment_time == "11:00"

    @pytest.mark.asyncio
    async def test_same_time_succeeds(self, ops):
        booked = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "c")
        result = await ops.reschedule_booking(booked["booking"]["id"], TOMORROW, "10:00")
        assert result["success"]

    @pytest.mark.asyncio
    async def test_onto_other_booking(self, ops):
        await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "a")
        other = await ops.validate_and_book(BARBER_ID, TOMORROW, "11:00", ["haircut"], "b")
        result = await ops.reschedule_booking(other["booking"]["id"], TOMORROW, "10:00")
        assert result["rejection"]["reason"] == "SLOT_TAKEN"

    @pytest.mark.asyncio
    async def test_to_another_day_keeps_code(self, ops):
        booked = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "c")
        result = await ops.reschedule_booking(booked["booking"]["id"], "2025-09-12", "09:00")
        assert result["booking"]["appointment_date"] == "2025-09-12"
        assert result["booking"]["confirmation_code"] == booked["booking"]["confirmation_code"]

    @pytest.mark.asyncio
    async def test_cancelled_cannot_be_rescheduled(self, ops):
        booked = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "c")
        await ops.cancel_booking(booked["booking"]["id"])
        result = await ops.reschedule_booking(booked["booking"]["id"], TOMORROW, "11:00")
        assert not result["success"]
        assert "cancelled" in result["message"]

    @pytest.mark.asyncio
    async def test_unknown_booking(self, ops):
        with pytest.raises(NotFoundError):
            await ops.reschedule_booking("nope", TOMORROW, "10:00")


class TestStatusChanges:
    @pytest.mark.asyncio
    async def test_confirm_then_complete(self, ops):
        booked = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "c")
        booking_id = booked["booking"]["id"]
        confirmed = await ops.update_booking_status(booking_id, "confirmed")
        assert confirmed["booking"]["status"] == "confirmed"
        completed = await ops.update_booking_status(booking_id, BookingStatus.COMPLETED)
        assert completed["message"] == f"Booking {booking_id} is now completed."

    @pytest.mark.asyncio
    async def test_history_is_persisted(self, ops, store, clock):
        booked = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "c")
        booking_id = booked["booking"]["id"]
        assert [h["status"] for h in booked["booking"]["status_history"]] == ["pending"]

        await ops.update_booking_status(booking_id, "confirmed")
        result = await ops.cancel_booking(booking_id, reason="ill")
        assert [h["status"] for h in result["booking"]["status_history"]] == [
            "pending", "confirmed", "cancelled",
        ]
        stored = store.get_booking(booking_id)
        assert stored.status_history[-1].previous == BookingStatus.CONFIRMED
        assert stored.status_history[-1].entered_at == clock.now

    @pytest.mark.asyncio
    async def test_invalid_transition(self, ops):
        booked = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "c")
        result = await ops.update_booking_status(booked["booking"]["id"], "completed")
        assert not result["success"]
        assert "Cannot change booking status" in result["message"]

    @pytest.mark.asyncio
    async def test_unknown_status(self, ops):
        booked = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "c")
        with pytest.raises(FormatError, match="Status must be one of"):
            await ops.update_booking_status(booked["booking"]["id"], "deleted")

    @pytest.mark.asyncio
    async def test_cancel_frees_slot_and_keeps_row(self, ops, store):
        booked = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "c")
        result = await ops.cancel_booking(booked["booking"]["id"], reason="running late")
        assert result["booking"]["cancellation_reason"] == "running late"

        rebooked = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "d")
        assert rebooked["success"]
        assert len(store.all_bookings()) == 2

    @pytest.mark.asyncio
    async def test_cancel_twice(self, ops):
        booked = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "c")
        await ops.cancel_booking(booked["booking"]["id"])
        again = await ops.cancel_booking(booked["booking"]["id"])
        assert not again["success"]


class TestReadOperations:
    @pytest.mark.asyncio
    async def test_availability_payload(self, ops):
        listing = await ops.get_availability(BARBER_ID, "2025-09-11", 30)
        assert listing["date"] == "2025-09-11"
        assert listing["shop_open"] is True
        assert listing["slots"][0] == {
            "start_time": "09:00",
            "iso_timestamp": "2025-09-11T09:00:00Z",
            "available": True,
        }

    @pytest.mark.asyncio
    async def test_availability_range(self, ops):
        days = await ops.get_availability_range(BARBER_ID, TOMORROW, 3, 30)
        assert [d["date"] for d in days] == ["2025-09-11", "2025-09-12", "2025-09-13"]

    @pytest.mark.asyncio
    async def test_occupied_slots(self, ops):
        await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["skin-fade"], "c")
        result = await ops.get_occupied_slots(BARBER_ID, TOMORROW)
        assert result["total_occupied"] == 1
        slot = result["occupied_slots"][0]
        assert (slot["start_time"], slot["end_time"]) == ("10:00", "10:45")
        assert result["earliest_booking_time"] is None
        assert result["can_book_on_date"] is True

    @pytest.mark.asyncio
    async def test_occupied_slots_today(self, ops):
        result = await ops.get_occupied_slots(BARBER_ID, TODAY)
        assert result["earliest_booking_time"] == "11:30"
        assert result["min_booking_time"].startswith("2025-09-10T11:07")

    @pytest.mark.asyncio
    async def test_check_booking_time(self, ops):
        result = await ops.check_booking_time("2025-09-11T10:00:00Z")
        assert result["can_book"] is True
        assert result["hours_until_booking"] == pytest.approx(23.88)
        assert result["currency"]

    @pytest.mark.asyncio
    async def test_check_booking_time_too_soon(self, ops):
        result = await ops.check_booking_time(datetime(2025, 9, 10, 10, 30, tzinfo=timezone.utc))
        assert result["is_shop_open"] is True
        assert result["meets_advance_requirement"] is False
        assert result["can_book"] is False

    @pytest.mark.asyncio
    async def test_check_booking_time_after_hours(self, ops):
        result = await ops.check_booking_time("2025-09-11T12:00:00")
        assert result["is_shop_open"] is False

    @pytest.mark.asyncio
    async def test_check_booking_time_malformed(self, ops):
        with pytest.raises(FormatError):
            await ops.check_booking_time("tomorrow at ten")

    @pytest.mark.asyncio
    async def test_shop_status_holiday(self):
        config = make_config(holidays=[
            Holiday(date=TOMORROW, name="Eve", custom_hours=[Shift(start="10:00", end="11:00")]),
        ])
        ops = BookingOperations(make_store(config=config), clock=FixedClock())
        status = await ops.get_shop_status(TOMORROW)
        assert status["is_open"] is True
        assert status["holiday"] == "Eve"
        assert status["shifts"] == [{"start": "10:00", "end": "11:00"}]

    @pytest.mark.asyncio
    async def test_find_by_confirmation_code(self, ops):
        booked = await ops.validate_and_book(BARBER_ID, TOMORROW, "10:00", ["haircut"], "c")
        code = booked["booking"]["confirmation_code"]
        found = await ops.find_booking_by_confirmation_code(code.lower())
        assert found["id"] == booked["booking"]["id"]
        assert await ops.find_booking_by_confirmation_code("BK-NOPE00") is None


class TestNonOverlapProperty:
    @pytest.mark.asyncio
    async def test_random_bookings_never_overlap(self, ops, store):
        rng = random.Random(7)
        service_ids = ["haircut", "skin-fade", "beard-trim", "kids-cut", "hair-colour"]
        for i in range(60):
            barber = rng.choice([BARBER_ID, OTHER_BARBER_ID])
            start = f"{rng.randrange(9, 12):02d}:{rng.choice(['00', '15', '30', '45'])}"
            services = rng.sample(service_ids, rng.randrange(1, 3))
            await ops.validate_and_book(barber, TOMORROW, start, services, f"cust-{i}")

        assert store.all_bookings()
        assert BookingConflictChecker().find_overlapping_pairs(store.all_bookings()) == []
