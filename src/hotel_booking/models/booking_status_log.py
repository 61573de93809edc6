"""
BookingStatusLog model - append-only audit trail of status changes
"""
from datetime import datetime
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship

from hotel_booking.core.database import Base
from hotel_booking.models.booking import BookingStatus


class BookingStatusLog(Base):
    __tablename__ = "booking_status_logs"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    status = Column(Enum(BookingStatus), nullable=False)
    reason = Column(Text, nullable=True)
    changed_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    booking = relationship("Booking", back_populates="status_logs")

    def __repr__(self):
        return f"<BookingStatusLog(id={self.id}, booking_id={self.booking_id}, status='{self.status.value}')>"
