"""
Pydantic schemas for room availability and calendar resources
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field


class AvailabilityResponse(BaseModel):
    """Availability of one room for a stay, with a price quote"""
    room_id: int
    check_in: date
    check_out: date
    guests: int
    available: bool
    conflicting_booking_id: Optional[int] = None
    nights: int
    price_per_night: Decimal
    total_amount: Decimal


class AvailableRoomResponse(BaseModel):
    room_id: int
    room_number: str
    floor: Optional[int] = None
    room_type_id: int
    room_type_name: str
    max_guests: int
    price_per_night: Decimal
    total_amount: Decimal

    @classmethod
    def from_room(cls, room, total_amount: Decimal):
        """Convert Room ORM model (room_type loaded) to response"""
        return cls(
            room_id=room.id,
            room_number=room.room_number,
            floor=room.floor,
            room_type_id=room.room_type_id,
            room_type_name=room.room_type.name,
            max_guests=room.room_type.max_guests,
            price_per_night=room.room_type.base_price,
            total_amount=total_amount,
        )


class AvailableRoomsResponse(BaseModel):
    check_in: date
    check_out: date
    guests: int
    nights: int
    rooms: List[AvailableRoomResponse]
    total: int


class CalendarDayResponse(BaseModel):
    """One ledger date; dates without a ledger row are available"""
    day: date
    is_available: bool = True
    reason: Optional[str] = Field(None, description="Why the date is blocked")


class RoomCalendarResponse(BaseModel):
    room_id: int
    start: date
    end: date
    days: List[CalendarDayResponse]
    available_days: int
