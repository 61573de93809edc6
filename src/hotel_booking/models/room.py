"""
Room model - a bookable unit

Rooms are never physically removed; `is_deleted` is a tombstone and
`is_active` takes a room out of sale temporarily.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from hotel_booking.core.database import Base


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String(10), nullable=False, unique=True)
    room_type_id = Column(Integer, ForeignKey("room_types.id"), nullable=False, index=True)
    floor = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    room_type = relationship("RoomType", back_populates="rooms")
    bookings = relationship("Booking", back_populates="room")
    availability = relationship("RoomAvailability", back_populates="room")

    def __repr__(self):
        return f"<Room(id={self.id}, number='{self.room_number}', type_id={self.room_type_id})>"

    @property
    def is_bookable(self) -> bool:
        """Requires room_type to be loaded"""
        return self.is_active and not self.is_deleted and not self.room_type.is_deleted
