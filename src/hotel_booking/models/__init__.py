"""
SQLAlchemy Models for the Hotel Booking Engine

Import all models here for easy access and to ensure proper relationship setup.
"""
from hotel_booking.core.database import Base

# Import all models to register them with SQLAlchemy
from hotel_booking.models.user import User, UserRole
from hotel_booking.models.room_type import RoomType
from hotel_booking.models.room import Room
from hotel_booking.models.booking import (
    Booking,
    BookingStatus,
    ALLOWED_TRANSITIONS,
    ACTIVE_BOOKING_STATUSES,
)
from hotel_booking.models.booking_status_log import BookingStatusLog
from hotel_booking.models.room_availability import RoomAvailability

# Export all models
__all__ = [
    "Base",
    "User",
    "UserRole",
    "RoomType",
    "Room",
    "Booking",
    "BookingStatus",
    "ALLOWED_TRANSITIONS",
    "ACTIVE_BOOKING_STATUSES",
    "BookingStatusLog",
    "RoomAvailability",
]
