"""Pydantic schemas for Booking resources"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

from hotel_booking.models.booking import BookingStatus


class BookingCreate(BaseModel):
    room_id: int = Field(..., gt=0)
    check_in: date
    check_out: date
    guests: int = Field(..., ge=1)
    special_requests: Optional[str] = Field(None, max_length=2000)


class AdminBookingCreate(BookingCreate):
    """Direct creation by staff on behalf of a guest, lands CONFIRMED"""
    user_id: int = Field(..., gt=0)


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    reason: Optional[str] = Field(None, max_length=1000)
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None

    @model_validator(mode='after')
    def check_timestamps_match_status(self):
        if self.check_in_time is not None and self.status != BookingStatus.CONFIRMED:
            raise ValueError("check_in_time can only be set when confirming a booking")
        if self.check_out_time is not None and self.status != BookingStatus.COMPLETED:
            raise ValueError("check_out_time can only be set when completing a booking")
        return self


class BookingResponse(BaseModel):
    id: int
    room_id: int
    user_id: int
    check_in: date
    check_out: date
    nights: int
    guests: int
    total_amount: Decimal
    special_requests: Optional[str] = None
    status: BookingStatus
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    # Display fields
    room_number: Optional[str] = None
    room_type_name: Optional[str] = None
    price_per_night: Optional[Decimal] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None

    @classmethod
    def from_booking(cls, booking):
        """Convert Booking ORM model (room, room type and user loaded) to response"""
        room = booking.room
        user = booking.user
        return cls(
            id=booking.id,
            room_id=booking.room_id,
            user_id=booking.user_id,
            check_in=booking.check_in,
            check_out=booking.check_out,
            nights=booking.nights,
            guests=booking.guests,
            total_amount=booking.total_amount,
            special_requests=booking.special_requests,
            status=booking.status,
            check_in_time=booking.check_in_time,
            check_out_time=booking.check_out_time,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
            room_number=room.room_number if room else None,
            room_type_name=room.room_type.name if room else None,
            price_per_night=room.room_type.base_price if room else None,
            guest_name=user.full_name if user else None,
            guest_email=user.email if user else None,
        )

    class Config:
        from_attributes = True


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]
    pagination: PaginationInfo


class BookingStatusLogResponse(BaseModel):
    id: int
    status: BookingStatus
    reason: Optional[str] = None
    changed_by_user_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BookingHistoryResponse(BaseModel):
    booking_id: int
    history: List[BookingStatusLogResponse]
