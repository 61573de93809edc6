"""
Booking engine exceptions

Each exception carries the HTTP status and error type the API reports for it.
Validation errors are raised before any transaction is opened; only
StorageFailureError is worth retrying.
"""


class BookingServiceError(Exception):
    """Base exception for booking service errors"""
    status_code = 400
    error_type = "BookingError"


# ==================== Validation ====================

class InvalidRangeError(BookingServiceError):
    """Raised when check-in is not strictly before check-out"""
    error_type = "InvalidRange"


class InvalidGuestCountError(BookingServiceError):
    """Raised when fewer than one guest is requested"""
    error_type = "InvalidGuestCount"


class PastDateError(BookingServiceError):
    """Raised when check-in is before today"""
    error_type = "PastDate"


class CapacityExceededError(BookingServiceError):
    """Raised when guests exceed the room type's max_guests"""
    error_type = "CapacityExceeded"

    def __init__(self, max_guests: int, requested: int):
        self.max_guests = max_guests
        self.requested = requested
        super().__init__(
            f"Room can only accommodate {max_guests} guests ({requested} requested)"
        )


# ==================== Lookup / access ====================

class RoomNotFoundError(BookingServiceError):
    """Raised when room doesn't exist, is inactive or deleted"""
    status_code = 404
    error_type = "RoomNotFound"


class UserNotFoundError(BookingServiceError):
    """Raised when the guest of an admin-created booking doesn't exist"""
    status_code = 404
    error_type = "UserNotFound"


class BookingNotFoundError(BookingServiceError):
    """Raised when booking doesn't exist or is not visible to the actor"""
    status_code = 404
    error_type = "NotFound"


class ForbiddenError(BookingServiceError):
    """Raised when the actor may not perform the operation"""
    status_code = 403
    error_type = "Forbidden"


# ==================== State ====================

class DateConflictError(BookingServiceError):
    """Raised when an active booking already holds some of the requested nights"""
    status_code = 409
    error_type = "DateConflict"

    def __init__(self, message: str, conflicting_booking_id=None):
        self.conflicting_booking_id = conflicting_booking_id
        super().__init__(message)


class InvalidTransitionError(BookingServiceError):
    """Raised when the status state machine does not allow the move"""
    status_code = 409
    error_type = "InvalidTransition"

    def __init__(self, from_status, to_status):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot change booking status from {from_status.value} to {to_status.value}"
        )


class AlreadyCancelledError(BookingServiceError):
    """Raised when cancelling a booking that is already cancelled"""
    status_code = 409
    error_type = "AlreadyCancelled"


class AlreadyCompletedError(BookingServiceError):
    """Raised when cancelling a booking that is already completed"""
    status_code = 409
    error_type = "AlreadyCompleted"


# ==================== Infrastructure ====================

class StorageFailureError(BookingServiceError):
    """Raised when the database aborts an operation for non-domain reasons"""
    status_code = 503
    error_type = "StorageFailure"
