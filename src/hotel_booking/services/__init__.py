"""
Services package exports
"""
from hotel_booking.services.actor import Actor
from hotel_booking.services.availability_service import AvailabilityService, AvailabilityResult
from hotel_booking.services.booking_service import BookingService, BookingFilters
from hotel_booking.services.cache_service import CacheService
from hotel_booking.services.errors import (
    BookingServiceError,
    InvalidRangeError,
    InvalidGuestCountError,
    PastDateError,
    CapacityExceededError,
    RoomNotFoundError,
    UserNotFoundError,
    BookingNotFoundError,
    ForbiddenError,
    DateConflictError,
    InvalidTransitionError,
    AlreadyCancelledError,
    AlreadyCompletedError,
    StorageFailureError,
)
from hotel_booking.services.pricing import compute_total, count_nights

__all__ = [
    "Actor",
    "AvailabilityService",
    "AvailabilityResult",
    "BookingService",
    "BookingFilters",
    "CacheService",
    "BookingServiceError",
    "InvalidRangeError",
    "InvalidGuestCountError",
    "PastDateError",
    "CapacityExceededError",
    "RoomNotFoundError",
    "UserNotFoundError",
    "BookingNotFoundError",
    "ForbiddenError",
    "DateConflictError",
    "InvalidTransitionError",
    "AlreadyCancelledError",
    "AlreadyCompletedError",
    "StorageFailureError",
    "compute_total",
    "count_nights",
]
