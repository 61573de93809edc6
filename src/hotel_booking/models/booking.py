"""
Booking model - room reservations with a fixed status state machine

PENDING -> CONFIRMED | CANCELLED
CONFIRMED -> COMPLETED | CANCELLED
CANCELLED, COMPLETED are terminal.
"""
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, Integer, Text, Date, DateTime, Numeric, ForeignKey, Enum,
    CheckConstraint, Index, DDL, event, func, text,
)
from sqlalchemy.dialects.postgresql import ExcludeConstraint
from sqlalchemy.orm import relationship

from hotel_booking.core.database import Base


class BookingStatus(PyEnum):
    """Enum for booking status"""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

    def can_transition_to(self, new_status: "BookingStatus") -> bool:
        return new_status in ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

ACTIVE_STAY_EXCLUSION = "ex_bookings_room_active_stay"


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint('check_in < check_out', name='ck_booking_stay_range'),
        CheckConstraint('guests >= 1', name='ck_booking_guests'),
        Index('ix_bookings_room_stay', 'room_id', 'check_in', 'check_out'),
    )

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)  # exclusive: the night before is the last one
    guests = Column(Integer, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    special_requests = Column(Text, nullable=True)
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.PENDING, index=True)
    check_in_time = Column(DateTime, nullable=True)  # stamped on CONFIRMED
    check_out_time = Column(DateTime, nullable=True)  # stamped on COMPLETED
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    room = relationship("Room", back_populates="bookings")
    user = relationship("User", back_populates="bookings")
    status_logs = relationship(
        "BookingStatusLog",
        back_populates="booking",
        order_by="BookingStatusLog.id",
    )

    def __repr__(self):
        return (f"<Booking(id={self.id}, room_id={self.room_id}, user_id={self.user_id}, "
                f"stay={self.check_in}..{self.check_out}, status='{self.status.value}', "
                f"total=${self.total_amount})>")

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def overlaps(self, check_in, check_out) -> bool:
        """Half-open [check_in, check_out) overlap"""
        return self.check_in < check_out and check_in < self.check_out


# PostgreSQL backstop: no two active bookings of one room may share a night.
event.listen(
    Booking.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)

Booking.__table__.append_constraint(
    ExcludeConstraint(
        (Booking.__table__.c.room_id, "="),
        (func.daterange(Booking.__table__.c.check_in, Booking.__table__.c.check_out), "&&"),
        name=ACTIVE_STAY_EXCLUSION,
        using="gist",
        where=text("status IN ('PENDING', 'CONFIRMED')"),
    ).ddl_if(dialect="postgresql")
)
