"""
Booking lifecycle tests: creation, state machine, ledger side effects, access
"""
from datetime import date, timedelta
from decimal import Decimal
import logging

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

from hotel_booking.models import (
    Booking,
    BookingStatus,
    BookingStatusLog,
    RoomAvailability,
    User,
)
from hotel_booking.services import (
    AlreadyCancelledError,
    AlreadyCompletedError,
    BookingFilters,
    BookingNotFoundError,
    BookingService,
    CapacityExceededError,
    DateConflictError,
    ForbiddenError,
    InvalidTransitionError,
    PastDateError,
    StorageFailureError,
    UserNotFoundError,
)


async def ledger(db, room_id):
    result = await db.execute(
        select(RoomAvailability)
        .where(RoomAvailability.room_id == room_id)
        .order_by(RoomAvailability.date)
    )
    return {row.date: (row.is_available, row.reason) for row in result.scalars().all()}


async def count_rows(db, model):
    return (await db.execute(select(func.count()).select_from(model))).scalar()


# ============================================================================
# CREATION
# ============================================================================
class TestCreateBooking:

    @pytest.mark.asyncio
    async def test_creates_pending_booking_with_price_and_log(self, db, seed, now):
        booking = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id,
            date(2024, 3, 1), date(2024, 3, 4), 2, "Late arrival", now,
        )

        assert booking.status == BookingStatus.PENDING
        assert booking.total_amount == Decimal("300.00")
        assert booking.user_id == seed.alice.user_id
        assert booking.special_requests == "Late arrival"
        assert booking.created_at == now
        assert booking.room.room_number == "101"
        assert booking.room.room_type.name == "Standard"
        assert booking.user.full_name == "Alice Guest"

        history = await BookingService.get_status_history(db, seed.alice, booking.id)
        assert [log.status for log in history] == [BookingStatus.PENDING]
        assert history[0].changed_by_user_id == seed.alice.user_id

    @pytest.mark.asyncio
    async def test_pending_booking_leaves_ledger_alone(self, db, seed, now):
        await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 4), 1, None, now
        )

        assert await ledger(db, seed.standard_room_id) == {}

    @pytest.mark.asyncio
    async def test_sequential_non_overlapping_bookings_succeed(self, db, seed, now):
        first = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 5), 1, None, now
        )
        second = await BookingService.create_booking(
            db, seed.bob, seed.standard_room_id, date(2024, 3, 5), date(2024, 3, 7), 1, None, now
        )

        assert first.id != second.id
        assert second.total_amount == Decimal("200.00")

    @pytest.mark.asyncio
    async def test_overlap_with_active_booking_conflicts(self, db, seed, now):
        first = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 5), 1, None, now
        )

        with pytest.raises(DateConflictError) as exc_info:
            await BookingService.create_booking(
                db, seed.bob, seed.standard_room_id, date(2024, 3, 3), date(2024, 3, 8), 1, None, now
            )

        assert exc_info.value.conflicting_booking_id == first.id
        assert await count_rows(db, Booking) == 1

    @pytest.mark.asyncio
    async def test_retry_of_same_request_does_not_duplicate(self, db, seed, now):
        args = (seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now)
        await BookingService.create_booking(db, seed.alice, *args)

        with pytest.raises(DateConflictError):
            await BookingService.create_booking(db, seed.alice, *args)

        assert await count_rows(db, Booking) == 1

    @pytest.mark.asyncio
    async def test_capacity_exceeded_writes_nothing(self, db, seed, now):
        with pytest.raises(CapacityExceededError):
            await BookingService.create_booking(
                db, seed.alice, seed.deluxe_room_id, date(2024, 3, 1), date(2024, 3, 3), 5, None, now
            )

        assert await count_rows(db, Booking) == 0
        assert await count_rows(db, BookingStatusLog) == 0

    @pytest.mark.asyncio
    async def test_check_in_yesterday_is_rejected(self, db, seed, now):
        yesterday = now.date() - timedelta(days=1)

        with pytest.raises(PastDateError):
            await BookingService.create_booking(
                db, seed.alice, seed.standard_room_id, yesterday, now.date() + timedelta(days=1), 1, None, now
            )


class TestCreateConfirmedBooking:

    @pytest.mark.asyncio
    async def test_admin_booking_is_confirmed_and_reserves_ledger(self, db, seed, now):
        booking = await BookingService.create_confirmed_booking(
            db, seed.admin, seed.bob.user_id, seed.deluxe_room_id,
            date(2024, 3, 10), date(2024, 3, 12), 3, None, now,
        )

        assert booking.status == BookingStatus.CONFIRMED
        assert booking.user_id == seed.bob.user_id
        assert booking.check_in_time == now
        assert booking.total_amount == Decimal("300.00")  # two nights, not per guest

        assert await ledger(db, seed.deluxe_room_id) == {
            date(2024, 3, 10): (False, "Booked by Bob Traveller"),
            date(2024, 3, 11): (False, "Booked by Bob Traveller"),
        }

        history = await BookingService.get_status_history(db, seed.admin, booking.id)
        assert [log.status for log in history] == [BookingStatus.CONFIRMED]
        assert history[0].changed_by_user_id == seed.admin.user_id

    @pytest.mark.asyncio
    async def test_guest_cannot_use_admin_path(self, db, seed, now):
        with pytest.raises(ForbiddenError):
            await BookingService.create_confirmed_booking(
                db, seed.alice, seed.alice.user_id, seed.deluxe_room_id,
                date(2024, 3, 10), date(2024, 3, 12), 1, None, now,
            )

    @pytest.mark.asyncio
    async def test_unknown_guest(self, db, seed, now):
        with pytest.raises(UserNotFoundError):
            await BookingService.create_confirmed_booking(
                db, seed.admin, 9999, seed.deluxe_room_id,
                date(2024, 3, 10), date(2024, 3, 12), 1, None, now,
            )

    @pytest.mark.asyncio
    async def test_same_conflict_rule_as_guest_path(self, db, seed, now):
        await BookingService.create_booking(
            db, seed.alice, seed.deluxe_room_id, date(2024, 3, 10), date(2024, 3, 12), 1, None, now
        )

        with pytest.raises(DateConflictError):
            await BookingService.create_confirmed_booking(
                db, seed.admin, seed.bob.user_id, seed.deluxe_room_id,
                date(2024, 3, 11), date(2024, 3, 13), 1, None, now,
            )


# ============================================================================
# STATE MACHINE
# ============================================================================
class TestTransitions:

    @pytest.mark.asyncio
    async def test_confirm_then_complete_stamps_times(self, db, seed, now):
        booking = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now
        )

        check_in_time = now + timedelta(days=29)
        confirmed = await BookingService.transition_status(
            db, seed.admin, booking.id, BookingStatus.CONFIRMED, now,
            reason="Guest arrived", check_in_time=check_in_time,
        )
        assert confirmed.status == BookingStatus.CONFIRMED
        assert confirmed.check_in_time == check_in_time

        later = now + timedelta(days=31)
        completed = await BookingService.transition_status(
            db, seed.admin, booking.id, BookingStatus.COMPLETED, later
        )
        assert completed.status == BookingStatus.COMPLETED
        assert completed.check_out_time == later
        assert completed.updated_at == later

        history = await BookingService.get_status_history(db, seed.admin, booking.id)
        assert [log.status for log in history] == [
            BookingStatus.PENDING,
            BookingStatus.CONFIRMED,
            BookingStatus.COMPLETED,
        ]
        assert history[1].reason == "Guest arrived"
        assert history[1].changed_by_user_id == seed.admin.user_id

    @pytest.mark.asyncio
    async def test_guest_cannot_transition(self, db, seed, now):
        booking = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now
        )

        with pytest.raises(ForbiddenError):
            await BookingService.transition_status(
                db, seed.alice, booking.id, BookingStatus.CONFIRMED, now
            )

    @pytest.mark.asyncio
    async def test_unknown_booking(self, db, seed, now):
        with pytest.raises(BookingNotFoundError):
            await BookingService.transition_status(db, seed.admin, 9999, BookingStatus.CONFIRMED, now)

    @pytest.mark.asyncio
    async def test_pending_cannot_complete(self, db, seed, now):
        booking = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now
        )

        with pytest.raises(InvalidTransitionError) as exc_info:
            await BookingService.transition_status(
                db, seed.admin, booking.id, BookingStatus.COMPLETED, now
            )

        assert "PENDING" in str(exc_info.value)
        assert "COMPLETED" in str(exc_info.value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("terminal", [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
    async def test_terminal_states_reject_every_transition(self, db, seed, now, terminal):
        booking = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now
        )
        # each rejected attempt rolls back and expires the loaded booking
        booking_id = booking.id
        await BookingService.transition_status(db, seed.admin, booking_id, BookingStatus.CONFIRMED, now)
        await BookingService.transition_status(db, seed.admin, booking_id, terminal, now)

        for target in BookingStatus:
            with pytest.raises(InvalidTransitionError):
                await BookingService.transition_status(db, seed.admin, booking_id, target, now)

        history = await BookingService.get_status_history(db, seed.admin, booking_id)
        assert len(history) == 3


# ============================================================================
# LEDGER
# ============================================================================
class TestLedger:

    @pytest.mark.asyncio
    async def test_cancel_confirmed_releases_only_its_nights(self, db, seed, now):
        room_id = seed.standard_room_id

        # Departure day carries its own entry that must survive the release
        db.add(RoomAvailability(room_id=room_id, date=date(2024, 3, 5), is_available=False, reason="Maintenance"))
        await db.commit()

        booking = await BookingService.create_booking(
            db, seed.alice, room_id, date(2024, 3, 1), date(2024, 3, 5), 2, None, now
        )
        await BookingService.transition_status(db, seed.admin, booking.id, BookingStatus.CONFIRMED, now)

        reserved = await ledger(db, room_id)
        for day in range(1, 5):
            assert reserved[date(2024, 3, day)] == (False, "Booked by Alice Guest")

        await BookingService.cancel_booking(db, seed.alice, booking.id, now, reason="Change of plans")

        released = await ledger(db, room_id)
        for day in range(1, 5):
            assert released[date(2024, 3, day)] == (True, None)
        assert released[date(2024, 3, 5)] == (False, "Maintenance")

    @pytest.mark.asyncio
    async def test_release_keeps_nights_of_other_confirmed_bookings(self, db, seed, now):
        if db.bind.dialect.name == "postgresql":
            pytest.skip("exclusion constraint forbids overlapping active bookings")
        room_id = seed.standard_room_id

        booking = await BookingService.create_booking(
            db, seed.alice, room_id, date(2024, 3, 1), date(2024, 3, 5), 1, None, now
        )
        await BookingService.transition_status(db, seed.admin, booking.id, BookingStatus.CONFIRMED, now)

        # Overlapping confirmed row written outside the engine
        db.add(Booking(
            room_id=room_id,
            user_id=seed.bob.user_id,
            check_in=date(2024, 3, 4),
            check_out=date(2024, 3, 6),
            guests=1,
            total_amount=Decimal("200.00"),
            status=BookingStatus.CONFIRMED,
        ))
        await db.commit()

        await BookingService.transition_status(db, seed.admin, booking.id, BookingStatus.CANCELLED, now)

        rows = await ledger(db, room_id)
        assert rows[date(2024, 3, 3)] == (True, None)
        assert rows[date(2024, 3, 4)] == (False, "Booked by Alice Guest")

    @pytest.mark.asyncio
    async def test_cancelling_pending_booking_marks_dates_available(self, db, seed, now):
        booking = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now
        )
        await BookingService.cancel_booking(db, seed.alice, booking.id, now)

        assert await ledger(db, seed.standard_room_id) == {
            date(2024, 3, 1): (True, None),
            date(2024, 3, 2): (True, None),
        }


# ============================================================================
# CANCELLATION
# ============================================================================
class TestCancelBooking:

    @pytest.mark.asyncio
    async def test_owner_can_cancel(self, db, seed, now):
        booking = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now
        )

        cancelled = await BookingService.cancel_booking(db, seed.alice, booking.id, now)

        assert cancelled.status == BookingStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_other_guest_is_forbidden(self, db, seed, now):
        booking = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now
        )

        with pytest.raises(ForbiddenError):
            await BookingService.cancel_booking(db, seed.bob, booking.id, now)

    @pytest.mark.asyncio
    async def test_cancelling_twice_fails(self, db, seed, now):
        booking = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now
        )
        await BookingService.cancel_booking(db, seed.alice, booking.id, now)

        with pytest.raises(AlreadyCancelledError):
            await BookingService.cancel_booking(db, seed.admin, booking.id, now)

    @pytest.mark.asyncio
    async def test_completed_booking_cannot_be_cancelled(self, db, seed, now):
        booking = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now
        )
        await BookingService.transition_status(db, seed.admin, booking.id, BookingStatus.CONFIRMED, now)
        await BookingService.transition_status(db, seed.admin, booking.id, BookingStatus.COMPLETED, now)

        with pytest.raises(AlreadyCompletedError):
            await BookingService.cancel_booking(db, seed.alice, booking.id, now)

    @pytest.mark.asyncio
    async def test_unknown_booking(self, db, seed, now):
        with pytest.raises(BookingNotFoundError):
            await BookingService.cancel_booking(db, seed.alice, 9999, now)


# ============================================================================
# READS
# ============================================================================
class TestReads:

    @pytest.mark.asyncio
    async def test_guest_cannot_see_other_guests_booking(self, db, seed, now):
        booking = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now
        )

        with pytest.raises(BookingNotFoundError):
            await BookingService.get_booking(db, seed.bob, booking.id)

        assert (await BookingService.get_booking(db, seed.admin, booking.id)).id == booking.id

    @pytest.mark.asyncio
    async def test_list_is_scoped_and_filtered(self, db, seed, now):
        march = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now
        )
        april = await BookingService.create_booking(
            db, seed.alice, seed.deluxe_room_id, date(2024, 4, 1), date(2024, 4, 3), 1, None, now
        )
        bobs = await BookingService.create_booking(
            db, seed.bob, seed.second_standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now
        )
        await BookingService.cancel_booking(db, seed.alice, march.id, now)

        own, total = await BookingService.list_bookings(db, seed.alice)
        assert total == 2
        assert {b.id for b in own} == {march.id, april.id}

        # Guests cannot widen the scope with a user filter
        _, total = await BookingService.list_bookings(db, seed.alice, BookingFilters(user_id=seed.bob.user_id))
        assert total == 2

        everyone, total = await BookingService.list_bookings(db, seed.admin)
        assert total == 3
        assert everyone[0].id == bobs.id

        pending, _ = await BookingService.list_bookings(db, seed.admin, BookingFilters(status=BookingStatus.PENDING))
        assert {b.id for b in pending} == {april.id, bobs.id}

        in_window, _ = await BookingService.list_bookings(
            db, seed.admin, BookingFilters(date_from=date(2024, 3, 31), date_to=date(2024, 4, 2))
        )
        assert [b.id for b in in_window] == [april.id]

        page_two, total = await BookingService.list_bookings(db, seed.admin, page=2, limit=2)
        assert total == 3
        assert len(page_two) == 1


# ============================================================================
# STORAGE FAILURES
# ============================================================================
def locked_database(statement):
    return OperationalError(statement, {}, Exception("database is locked"))


class TestStorageFailures:

    @pytest.mark.asyncio
    async def test_database_error_during_validation_reads(self, db, seed, now, monkeypatch):
        booking = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now
        )
        booking_id = booking.id

        async def failing_execute(*args, **kwargs):
            raise locked_database("SELECT 1")

        monkeypatch.setattr(db, "execute", failing_execute)

        with pytest.raises(StorageFailureError):
            await BookingService.create_booking(
                db, seed.bob, seed.standard_room_id, date(2024, 3, 10), date(2024, 3, 12), 1, None, now
            )
        with pytest.raises(StorageFailureError):
            await BookingService.create_confirmed_booking(
                db, seed.admin, seed.bob.user_id, seed.standard_room_id,
                date(2024, 3, 10), date(2024, 3, 12), 1, None, now,
            )
        with pytest.raises(StorageFailureError):
            await BookingService.cancel_booking(db, seed.alice, booking_id, now)

    @pytest.mark.asyncio
    async def test_ledger_failure_rolls_back_confirmation(self, db, seed, now, monkeypatch):
        booking = await BookingService.create_booking(
            db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 4), 1, None, now
        )
        booking_id = booking.id

        async def failing_write_ledger(*args, **kwargs):
            raise locked_database("INSERT INTO room_availability")

        monkeypatch.setattr(BookingService, "_write_ledger", staticmethod(failing_write_ledger))

        with pytest.raises(StorageFailureError):
            await BookingService.transition_status(
                db, seed.admin, booking_id, BookingStatus.CONFIRMED, now
            )

        stored = await BookingService.get_booking(db, seed.admin, booking_id)
        assert stored.status == BookingStatus.PENDING
        assert stored.check_in_time is None
        assert await count_rows(db, BookingStatusLog) == 1
        assert await ledger(db, seed.standard_room_id) == {}

    @pytest.mark.asyncio
    async def test_pending_caller_changes_are_reported_before_commit(self, db, seed, now, caplog):
        guest = await db.get(User, seed.alice.user_id)
        guest.full_name = "Alice Renamed"

        with caplog.at_level(logging.WARNING, logger="hotel_booking.services.booking_service"):
            await BookingService.create_booking(
                db, seed.alice, seed.standard_room_id, date(2024, 3, 1), date(2024, 3, 3), 1, None, now
            )

        assert "pending caller changes" in caplog.text
        assert "1 dirty" in caplog.text
