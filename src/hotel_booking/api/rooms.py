"""Room availability API endpoints"""
from datetime import date, datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_booking.api.deps import get_now
from hotel_booking.core.database import get_db
from hotel_booking.schemas import (
    AvailabilityResponse,
    AvailableRoomResponse,
    AvailableRoomsResponse,
    RoomCalendarResponse,
)
from hotel_booking.services import AvailabilityService, compute_total, count_nights

router = APIRouter()


@router.get("/rooms/available", response_model=AvailableRoomsResponse)
async def list_available_rooms(
    check_in: date = Query(..., description="First night"),
    check_out: date = Query(..., description="Departure day (exclusive)"),
    guests: int = Query(1, ge=1),
    now: datetime = Depends(get_now),
    db: AsyncSession = Depends(get_db),
):
    """All rooms that fit the party and are free for the whole stay"""
    rooms = await AvailabilityService.list_available_rooms(
        db, check_in, check_out, guests, today=now.date()
    )
    return AvailableRoomsResponse(
        check_in=check_in,
        check_out=check_out,
        guests=guests,
        nights=count_nights(check_in, check_out),
        rooms=[
            AvailableRoomResponse.from_room(
                room, compute_total(room.room_type.base_price, check_in, check_out)
            )
            for room in rooms
        ],
        total=len(rooms),
    )


@router.get("/rooms/{room_id}/availability", response_model=AvailabilityResponse)
async def check_room_availability(
    room_id: int,
    check_in: date = Query(...),
    check_out: date = Query(...),
    guests: int = Query(1, ge=1),
    now: datetime = Depends(get_now),
    db: AsyncSession = Depends(get_db),
):
    """Availability and price quote for one room"""
    result = await AvailabilityService.check_availability(
        db, room_id, check_in, check_out, guests, today=now.date()
    )
    price = result.price_per_night

    return AvailabilityResponse(
        room_id=room_id,
        check_in=check_in,
        check_out=check_out,
        guests=guests,
        available=result.available,
        conflicting_booking_id=result.conflicting_booking_id,
        nights=count_nights(check_in, check_out),
        price_per_night=price,
        total_amount=compute_total(price, check_in, check_out),
    )


@router.get("/rooms/{room_id}/calendar", response_model=RoomCalendarResponse)
async def get_room_calendar(
    room_id: int,
    start: date = Query(..., description="First day of the window"),
    end: date = Query(..., description="Day after the last day of the window"),
    db: AsyncSession = Depends(get_db),
):
    """Per-date availability ledger of a room"""
    days = await AvailabilityService.get_room_calendar(db, room_id, start, end)
    return RoomCalendarResponse(
        room_id=room_id,
        start=start,
        end=end,
        days=days,
        available_days=sum(1 for day in days if day.is_available),
    )
