"""
RoomType model - nightly price and guest capacity shared by rooms
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, Numeric, Boolean, CheckConstraint
from sqlalchemy.orm import relationship

from hotel_booking.core.database import Base


class RoomType(Base):
    __tablename__ = "room_types"
    __table_args__ = (
        CheckConstraint('max_guests >= 1', name='ck_room_type_max_guests'),
        CheckConstraint('base_price >= 0', name='ck_room_type_base_price'),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text)
    base_price = Column(Numeric(10, 2), nullable=False)  # per night
    max_guests = Column(Integer, nullable=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    rooms = relationship("Room", back_populates="room_type")

    def __repr__(self):
        return f"<RoomType(id={self.id}, name='{self.name}', price=${self.base_price}, max_guests={self.max_guests})>"
