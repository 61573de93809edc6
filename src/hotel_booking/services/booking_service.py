"""
Booking Service - creation, status transitions and the availability ledger

Every write happens in one `async with db.begin()` block: the booking row,
its status log entry and any ledger rows commit together or not at all.
The room row is locked first in every write path, so concurrent bookings
and transitions on one room are serialized by the database.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Tuple
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_booking.core.config import settings
from hotel_booking.core.metrics import (
    track_time,
    record_booking_created,
    record_transition,
    record_conflict,
    record_storage_failure,
    booking_creation_duration_seconds,
    booking_transition_duration_seconds,
)
from hotel_booking.models import Booking, BookingStatusLog, Room, RoomAvailability, User
from hotel_booking.models.booking import BookingStatus, ACTIVE_STAY_EXCLUSION
from hotel_booking.services.actor import Actor
from hotel_booking.services.availability_service import AvailabilityService
from hotel_booking.services.cache_service import CacheService
from hotel_booking.services.errors import (
    AlreadyCancelledError,
    AlreadyCompletedError,
    BookingNotFoundError,
    DateConflictError,
    ForbiddenError,
    InvalidTransitionError,
    StorageFailureError,
    UserNotFoundError,
)
from hotel_booking.services.pricing import DateLike, compute_total
import logging

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "Room is already booked for the selected dates"
CREATE_FAILED_MESSAGE = "Booking could not be stored, please retry"
TRANSITION_FAILED_MESSAGE = "Booking status could not be stored, please retry"


@dataclass
class BookingFilters:
    status: Optional[BookingStatus] = None
    user_id: Optional[int] = None
    room_id: Optional[int] = None
    date_from: Optional[date] = None  # bookings ending after this day
    date_to: Optional[date] = None  # bookings starting before this day


def _booking_load_options():
    return (
        selectinload(Booking.room).selectinload(Room.room_type),
        selectinload(Booking.user),
    )


def _stay_nights(booking: Booking) -> List[date]:
    return [booking.check_in + timedelta(days=i) for i in range(booking.nights)]


def _is_overlap_violation(exc: IntegrityError) -> bool:
    return ACTIVE_STAY_EXCLUSION in str(exc.orig)


def _storage_failure(operation: str, message: str, exc: SQLAlchemyError, **context) -> StorageFailureError:
    record_storage_failure(operation)
    logger.error(f"{operation} failed: {exc}", extra=context)
    return StorageFailureError(message)


def _warn_on_pending_changes(db: AsyncSession) -> None:
    if db.new or db.dirty or db.deleted:
        logger.warning(
            f"Session has pending caller changes that the booking write will commit: "
            f"{len(db.new)} new, {len(db.dirty)} dirty, {len(db.deleted)} deleted"
        )


async def _end_read_transaction(db: AsyncSession) -> None:
    """
    Close the transaction autobegun by validation reads before a write block

    This is a commit, so anything the caller flushed or left pending in the
    session is committed along with it. Pass a session without unrelated
    work; write operations log a warning when they are handed one.
    """
    if db.in_transaction():
        await db.commit()


class BookingService:
    """Service for the booking lifecycle"""

    # ==================== Creation ====================

    @staticmethod
    @track_time(booking_creation_duration_seconds)
    async def create_booking(
        db: AsyncSession,
        actor: Actor,
        room_id: int,
        check_in: DateLike,
        check_out: DateLike,
        guests: int,
        special_requests: Optional[str],
        now: datetime,
    ) -> Booking:
        """
        Create a PENDING booking for the acting user

        The ledger is untouched until the booking is confirmed.
        """
        return await BookingService._create(
            db,
            actor=actor,
            user_id=actor.user_id,
            room_id=room_id,
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            special_requests=special_requests,
            now=now,
            status=BookingStatus.PENDING,
        )

    @staticmethod
    @track_time(booking_creation_duration_seconds)
    async def create_confirmed_booking(
        db: AsyncSession,
        actor: Actor,
        user_id: int,
        room_id: int,
        check_in: DateLike,
        check_out: DateLike,
        guests: int,
        special_requests: Optional[str],
        now: datetime,
    ) -> Booking:
        """
        Staff books a room directly for a guest

        The booking starts CONFIRMED with its check-in time stamped, and its
        nights are reserved in the ledger in the same transaction.
        """
        if not actor.is_admin:
            raise ForbiddenError("Only administrators can create confirmed bookings")

        _warn_on_pending_changes(db)
        user_query = select(User.id).where(User.id == user_id, User.is_deleted.is_(False))
        try:
            user_exists = (await db.execute(user_query)).scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            raise _storage_failure(
                "create_booking", CREATE_FAILED_MESSAGE, e, user_id=user_id
            ) from e
        if not user_exists:
            raise UserNotFoundError(f"User {user_id} not found")

        return await BookingService._create(
            db,
            actor=actor,
            user_id=user_id,
            room_id=room_id,
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            special_requests=special_requests,
            now=now,
            status=BookingStatus.CONFIRMED,
        )

    @staticmethod
    async def _create(
        db: AsyncSession,
        actor: Actor,
        user_id: int,
        room_id: int,
        check_in: DateLike,
        check_out: DateLike,
        guests: int,
        special_requests: Optional[str],
        now: datetime,
        status: BookingStatus,
    ) -> Booking:
        _warn_on_pending_changes(db)
        start, end = AvailabilityService.validate_stay(check_in, check_out, guests, now.date())

        try:
            # 1. Validate outside the write transaction
            room = await AvailabilityService.get_bookable_room(db, room_id)
            AvailabilityService.ensure_capacity(room, guests)

            conflicting_id = await AvailabilityService.find_conflicting_booking(db, room_id, start, end)
            if conflicting_id is not None:
                record_conflict("precheck")
                raise DateConflictError(CONFLICT_MESSAGE, conflicting_id)

            await _end_read_transaction(db)

            async with db.begin():
                # 2. Lock the room row, then re-check under the lock
                room = await AvailabilityService.get_bookable_room(db, room_id, for_update=True)
                AvailabilityService.ensure_capacity(room, guests)

                conflicting_id = await AvailabilityService.find_conflicting_booking(
                    db, room_id, start, end
                )
                if conflicting_id is not None:
                    record_conflict("transaction")
                    raise DateConflictError(CONFLICT_MESSAGE, conflicting_id)

                # 3. Price the stay
                total_amount = compute_total(room.room_type.base_price, start, end)

                # 4. Insert booking and its first status log entry
                booking = Booking(
                    room_id=room_id,
                    user_id=user_id,
                    check_in=start,
                    check_out=end,
                    guests=guests,
                    total_amount=total_amount,
                    special_requests=special_requests,
                    status=status,
                    check_in_time=now if status == BookingStatus.CONFIRMED else None,
                    created_at=now,
                    updated_at=now,
                )
                db.add(booking)
                await db.flush()

                db.add(BookingStatusLog(
                    booking_id=booking.id,
                    status=status,
                    reason="Created by staff" if status == BookingStatus.CONFIRMED else None,
                    changed_by_user_id=actor.user_id,
                    created_at=now,
                ))

                booking = await BookingService._load_booking(db, booking.id)

                # 5. Confirmed bookings reserve their nights right away
                if status == BookingStatus.CONFIRMED:
                    await BookingService._reserve_dates(db, booking, now)

                await db.flush()
        except IntegrityError as e:
            if _is_overlap_violation(e):
                record_conflict("constraint")
                raise DateConflictError(CONFLICT_MESSAGE) from e
            raise _storage_failure("create_booking", CREATE_FAILED_MESSAGE, e, room_id=room_id) from e
        except SQLAlchemyError as e:
            raise _storage_failure("create_booking", CREATE_FAILED_MESSAGE, e, room_id=room_id) from e

        # 6. After commit: cache, metrics, log
        if status == BookingStatus.CONFIRMED:
            await CacheService.invalidate_room_calendar(room_id)

        record_booking_created(booking)
        logger.info(
            f"Booking {booking.id} created as {status.value} for {start}..{end}",
            extra={'booking_id': booking.id, 'room_id': room_id, 'user_id': user_id},
        )

        return booking

    # ==================== Transitions ====================

    @staticmethod
    @track_time(booking_transition_duration_seconds)
    async def transition_status(
        db: AsyncSession,
        actor: Actor,
        booking_id: int,
        new_status: BookingStatus,
        now: datetime,
        reason: Optional[str] = None,
        check_in_time: Optional[datetime] = None,
        check_out_time: Optional[datetime] = None,
    ) -> Booking:
        """Move a booking through the state machine (staff only)"""
        if not actor.is_admin:
            raise ForbiddenError("Only administrators can change booking status")

        return await BookingService._apply_transition(
            db,
            actor,
            booking_id,
            new_status,
            now,
            reason=reason,
            check_in_time=check_in_time,
            check_out_time=check_out_time,
        )

    @staticmethod
    @track_time(booking_transition_duration_seconds)
    async def cancel_booking(
        db: AsyncSession,
        actor: Actor,
        booking_id: int,
        now: datetime,
        reason: Optional[str] = None,
    ) -> Booking:
        """
        Cancel a booking on behalf of its guest or staff

        Cancelling twice is an error, not a no-op.
        """

        def check_cancellable(booking: Booking) -> None:
            if not actor.can_access(booking.user_id):
                raise ForbiddenError("You can only cancel your own bookings")
            if booking.status == BookingStatus.CANCELLED:
                raise AlreadyCancelledError(f"Booking {booking.id} is already cancelled")
            if booking.status == BookingStatus.COMPLETED:
                raise AlreadyCompletedError(f"Booking {booking.id} is already completed")

        return await BookingService._apply_transition(
            db,
            actor,
            booking_id,
            BookingStatus.CANCELLED,
            now,
            reason=reason,
            guard=check_cancellable,
        )

    @staticmethod
    async def _apply_transition(
        db: AsyncSession,
        actor: Actor,
        booking_id: int,
        new_status: BookingStatus,
        now: datetime,
        reason: Optional[str] = None,
        check_in_time: Optional[datetime] = None,
        check_out_time: Optional[datetime] = None,
        guard: Optional[Callable[[Booking], None]] = None,
    ) -> Booking:
        _warn_on_pending_changes(db)

        try:
            room_query = select(Booking.room_id).where(Booking.id == booking_id)
            room_id = (await db.execute(room_query)).scalar_one_or_none()
            if room_id is None:
                raise BookingNotFoundError(f"Booking {booking_id} not found")

            await _end_read_transaction(db)

            async with db.begin():
                # 1. Lock room, then booking
                await db.execute(select(Room.id).where(Room.id == room_id).with_for_update())
                booking = await BookingService._load_booking(db, booking_id, for_update=True)

                # 2. Validate against the locked state
                if guard is not None:
                    guard(booking)

                old_status = booking.status
                if not old_status.can_transition_to(new_status):
                    raise InvalidTransitionError(old_status, new_status)

                # 3. Update status and stamps
                booking.status = new_status
                booking.updated_at = now
                if new_status == BookingStatus.CONFIRMED:
                    booking.check_in_time = check_in_time or now
                elif new_status == BookingStatus.COMPLETED:
                    booking.check_out_time = check_out_time or now

                # 4. Audit trail
                db.add(BookingStatusLog(
                    booking_id=booking.id,
                    status=new_status,
                    reason=reason,
                    changed_by_user_id=actor.user_id,
                    created_at=now,
                ))

                # 5. Ledger side effects
                if new_status == BookingStatus.CONFIRMED:
                    await BookingService._reserve_dates(db, booking, now)
                elif new_status == BookingStatus.CANCELLED:
                    await BookingService._release_dates(db, booking, now)

                await db.flush()
        except SQLAlchemyError as e:
            raise _storage_failure(
                "transition_status", TRANSITION_FAILED_MESSAGE, e, booking_id=booking_id
            ) from e

        # 6. After commit: cache, metrics, log
        if new_status in (BookingStatus.CONFIRMED, BookingStatus.CANCELLED):
            await CacheService.invalidate_room_calendar(booking.room_id)

        record_transition(old_status, new_status)
        logger.info(
            f"Booking {booking.id}: {old_status.value} -> {new_status.value}",
            extra={
                'booking_id': booking.id,
                'room_id': booking.room_id,
                'user_id': actor.user_id,
                'from_status': old_status.value,
                'to_status': new_status.value,
            },
        )

        return booking

    # ==================== Ledger ====================

    @staticmethod
    async def _reserve_dates(db: AsyncSession, booking: Booking, now: datetime) -> None:
        await BookingService._write_ledger(
            db,
            booking.room_id,
            _stay_nights(booking),
            is_available=False,
            reason=f"Booked by {booking.user.full_name}",
            now=now,
        )

    @staticmethod
    async def _release_dates(db: AsyncSession, booking: Booking, now: datetime) -> None:
        """Free the booking's nights except those another CONFIRMED booking still holds"""
        others_query = select(Booking).where(
            Booking.room_id == booking.room_id,
            Booking.id != booking.id,
            Booking.status == BookingStatus.CONFIRMED,
            Booking.check_in < booking.check_out,
            Booking.check_out > booking.check_in,
        )
        result = await db.execute(others_query)
        held = set()
        for other in result.scalars().all():
            held.update(_stay_nights(other))

        nights = [day for day in _stay_nights(booking) if day not in held]
        await BookingService._write_ledger(
            db,
            booking.room_id,
            nights,
            is_available=True,
            reason=None,
            now=now,
        )

    @staticmethod
    async def _write_ledger(
        db: AsyncSession,
        room_id: int,
        nights: List[date],
        is_available: bool,
        reason: Optional[str],
        now: datetime,
    ) -> None:
        """Upsert one ledger row per night"""
        if not nights:
            return

        query = select(RoomAvailability).where(
            RoomAvailability.room_id == room_id,
            RoomAvailability.date.in_(nights),
        )
        result = await db.execute(query)
        existing = {row.date: row for row in result.scalars().all()}

        for day in nights:
            row = existing.get(day)
            if row is None:
                db.add(RoomAvailability(
                    room_id=room_id,
                    date=day,
                    is_available=is_available,
                    reason=reason,
                    updated_at=now,
                ))
            else:
                row.is_available = is_available
                row.reason = reason
                row.updated_at = now

    # ==================== Reads ====================

    @staticmethod
    async def _load_booking(
        db: AsyncSession,
        booking_id: int,
        for_update: bool = False,
    ) -> Optional[Booking]:
        query = (
            select(Booking)
            .where(Booking.id == booking_id)
            .options(*_booking_load_options())
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update(of=Booking)

        result = await db.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_booking(db: AsyncSession, actor: Actor, booking_id: int) -> Booking:
        """
        Get a booking with display fields

        Guests asking for someone else's booking get BookingNotFoundError, the
        same as for a missing one.
        """
        booking = await BookingService._load_booking(db, booking_id)

        if booking is None or not actor.can_access(booking.user_id):
            raise BookingNotFoundError(f"Booking {booking_id} not found")

        return booking

    @staticmethod
    async def list_bookings(
        db: AsyncSession,
        actor: Actor,
        filters: Optional[BookingFilters] = None,
        page: int = 1,
        limit: int = settings.DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[Booking], int]:
        """List bookings newest first; guests only ever see their own"""
        filters = filters or BookingFilters()
        page = max(page, 1)
        limit = max(1, min(limit, settings.MAX_PAGE_SIZE))

        query = select(Booking)

        if not actor.is_admin:
            query = query.where(Booking.user_id == actor.user_id)
        elif filters.user_id is not None:
            query = query.where(Booking.user_id == filters.user_id)

        if filters.status is not None:
            query = query.where(Booking.status == filters.status)
        if filters.room_id is not None:
            query = query.where(Booking.room_id == filters.room_id)
        if filters.date_from is not None:
            query = query.where(Booking.check_out > filters.date_from)
        if filters.date_to is not None:
            query = query.where(Booking.check_in < filters.date_to)

        # Get total count
        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar()

        # Get paginated results
        query = (
            query.options(*_booking_load_options())
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await db.execute(query)
        bookings = list(result.scalars().all())

        return bookings, total

    @staticmethod
    async def get_status_history(
        db: AsyncSession,
        actor: Actor,
        booking_id: int,
    ) -> List[BookingStatusLog]:
        """Status log of a booking in the order it was written"""
        await BookingService.get_booking(db, actor, booking_id)

        query = (
            select(BookingStatusLog)
            .where(BookingStatusLog.booking_id == booking_id)
            .order_by(BookingStatusLog.id)
        )
        result = await db.execute(query)
        return list(result.scalars().all())
