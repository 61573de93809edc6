"""
Pydantic schemas for API request/response validation
"""
from hotel_booking.schemas.availability import (
    AvailabilityResponse,
    AvailableRoomResponse,
    AvailableRoomsResponse,
    CalendarDayResponse,
    RoomCalendarResponse,
)
from hotel_booking.schemas.booking import (
    BookingCreate,
    AdminBookingCreate,
    BookingStatusUpdate,
    BookingResponse,
    PaginationInfo,
    BookingListResponse,
    BookingStatusLogResponse,
    BookingHistoryResponse,
)

__all__ = [
    # Availability
    "AvailabilityResponse",
    "AvailableRoomResponse",
    "AvailableRoomsResponse",
    "CalendarDayResponse",
    "RoomCalendarResponse",
    # Bookings
    "BookingCreate",
    "AdminBookingCreate",
    "BookingStatusUpdate",
    "BookingResponse",
    "PaginationInfo",
    "BookingListResponse",
    "BookingStatusLogResponse",
    "BookingHistoryResponse",
]
