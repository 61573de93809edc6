"""
Availability Service - room capacity and date-overlap checks

A booking holds the nights [check_in, check_out). Two stays overlap when
each starts before the other ends, so a check-out and a check-in on the
same day never conflict. Only PENDING and CONFIRMED bookings hold nights.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple
from sqlalchemy import select, and_
from sqlalchemy.orm import selectinload, contains_eager
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_booking.models import Booking, Room, RoomType, RoomAvailability
from hotel_booking.models.booking import ACTIVE_BOOKING_STATUSES
from hotel_booking.schemas.availability import CalendarDayResponse
from hotel_booking.services.cache_service import CacheService
from hotel_booking.services.errors import (
    InvalidRangeError,
    InvalidGuestCountError,
    PastDateError,
    CapacityExceededError,
    RoomNotFoundError,
)
from hotel_booking.services.pricing import DateLike, stay_dates
import logging

logger = logging.getLogger(__name__)

MAX_CALENDAR_DAYS = 366


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    price_per_night: Decimal
    conflicting_booking_id: Optional[int] = None


def overlapping_bookings_clause(room_id, check_in: date, check_out: date):
    """SQL predicate selecting active bookings of a room that share a night with the stay"""
    return and_(
        Booking.room_id == room_id,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        Booking.check_in < check_out,
        Booking.check_out > check_in,
    )


class AvailabilityService:
    """Read-only checks used by the booking lifecycle and the rooms API"""

    @staticmethod
    def validate_stay(
        check_in: DateLike,
        check_out: DateLike,
        guests: int,
        today: date,
    ) -> Tuple[date, date]:
        """Range, past-date and guest-count checks; returns the normalized stay"""
        start, end = stay_dates(check_in, check_out)

        if start < today:
            raise PastDateError("Check-in date cannot be in the past")

        if guests < 1:
            raise InvalidGuestCountError("At least one guest is required")

        return start, end

    @staticmethod
    def ensure_capacity(room: Room, guests: int) -> None:
        max_guests = room.room_type.max_guests
        if guests > max_guests:
            raise CapacityExceededError(max_guests, guests)

    @staticmethod
    async def get_bookable_room(
        db: AsyncSession,
        room_id: int,
        for_update: bool = False,
    ) -> Room:
        """
        Load a room with its type; inactive or deleted rooms count as missing.

        With for_update the room row is locked until the surrounding
        transaction ends, serializing every booking write for that room.
        """
        query = (
            select(Room)
            .where(Room.id == room_id)
            .options(selectinload(Room.room_type))
        )
        if for_update:
            query = query.with_for_update(of=Room).execution_options(populate_existing=True)

        result = await db.execute(query)
        room = result.scalar_one_or_none()

        if room is None or not room.is_bookable:
            raise RoomNotFoundError(f"Room {room_id} not found")

        return room

    @staticmethod
    async def find_conflicting_booking(
        db: AsyncSession,
        room_id: int,
        check_in: date,
        check_out: date,
    ) -> Optional[int]:
        """Id of the earliest active booking overlapping the stay, if any"""
        query = (
            select(Booking.id)
            .where(overlapping_bookings_clause(room_id, check_in, check_out))
            .order_by(Booking.check_in, Booking.id)
            .limit(1)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    async def check_availability(
        db: AsyncSession,
        room_id: int,
        check_in: DateLike,
        check_out: DateLike,
        guests: int,
        today: date,
    ) -> AvailabilityResult:
        """
        Is the room free for the stay?

        Validation runs in order: range, past date, guest count, room
        lookup, capacity. A conflict is not an error here; it is reported
        in the result with the id of the earliest overlapping booking.
        """
        start, end = AvailabilityService.validate_stay(check_in, check_out, guests, today)

        room = await AvailabilityService.get_bookable_room(db, room_id)
        AvailabilityService.ensure_capacity(room, guests)

        conflicting_id = await AvailabilityService.find_conflicting_booking(db, room_id, start, end)

        logger.debug(
            f"Availability room={room_id} {start}..{end}: "
            f"{'conflict with booking ' + str(conflicting_id) if conflicting_id else 'free'}",
            extra={'room_id': room_id},
        )

        return AvailabilityResult(
            available=conflicting_id is None,
            price_per_night=room.room_type.base_price,
            conflicting_booking_id=conflicting_id,
        )

    @staticmethod
    async def list_available_rooms(
        db: AsyncSession,
        check_in: DateLike,
        check_out: DateLike,
        guests: int,
        today: date,
    ) -> List[Room]:
        """Every bookable room that fits the party and is free for the stay"""
        start, end = AvailabilityService.validate_stay(check_in, check_out, guests, today)

        overlapping = (
            select(Booking.id)
            .where(overlapping_bookings_clause(Room.id, start, end))
            .exists()
        )

        query = (
            select(Room)
            .join(Room.room_type)
            .options(contains_eager(Room.room_type))
            .where(
                Room.is_active.is_(True),
                Room.is_deleted.is_(False),
                RoomType.is_deleted.is_(False),
                RoomType.max_guests >= guests,
                ~overlapping,
            )
            .order_by(Room.room_number)
        )

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def get_room_calendar(
        db: AsyncSession,
        room_id: int,
        start: date,
        end: date,
    ) -> List[CalendarDayResponse]:
        """
        Ledger view of [start, end) for one room

        Cache key: room:{room_id}:calendar:{start}:{end}
        Invalidated after every committed ledger write for the room.
        """
        if start >= end:
            raise InvalidRangeError("Calendar end date must be after start date")
        if (end - start).days > MAX_CALENDAR_DAYS:
            raise InvalidRangeError(f"Calendar window cannot exceed {MAX_CALENDAR_DAYS} days")

        room_query = select(Room.id).where(Room.id == room_id, Room.is_deleted.is_(False))
        if (await db.execute(room_query)).scalar_one_or_none() is None:
            raise RoomNotFoundError(f"Room {room_id} not found")

        cached = await CacheService.get_room_calendar(room_id, start, end)
        if cached:
            return [CalendarDayResponse(**day) for day in cached]

        ledger_query = select(RoomAvailability).where(
            RoomAvailability.room_id == room_id,
            RoomAvailability.date >= start,
            RoomAvailability.date < end,
        )
        result = await db.execute(ledger_query)
        by_date = {row.date: row for row in result.scalars().all()}

        days = []
        day = start
        while day < end:
            row = by_date.get(day)
            if row is None:
                days.append(CalendarDayResponse(day=day))
            else:
                days.append(CalendarDayResponse(day=day, is_available=row.is_available, reason=row.reason))
            day += timedelta(days=1)

        await CacheService.set_room_calendar(
            room_id, start, end, [d.model_dump(mode='json') for d in days]
        )

        return days
