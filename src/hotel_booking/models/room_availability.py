"""
RoomAvailability model - per-room, per-date calendar ledger

A projection of CONFIRMED bookings for fast calendar reads. Bookings are the
source of truth; rows here are written only by BookingService inside the
same transaction as the status change they reflect.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from hotel_booking.core.database import Base


class RoomAvailability(Base):
    __tablename__ = "room_availability"
    __table_args__ = (
        UniqueConstraint('room_id', 'date', name='uq_room_availability_room_date'),
    )

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    is_available = Column(Boolean, nullable=False, default=True)
    reason = Column(String(255), nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    room = relationship("Room", back_populates="availability")

    def __repr__(self):
        return (f"<RoomAvailability(room_id={self.room_id}, date={self.date}, "
                f"available={self.is_available})>")
