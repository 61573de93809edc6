"""Bookings API endpoints"""
import math
from datetime import date, datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_booking.api.deps import get_actor, get_now
from hotel_booking.core.config import settings
from hotel_booking.core.database import get_db
from hotel_booking.models.booking import BookingStatus
from hotel_booking.schemas import (
    BookingCreate,
    AdminBookingCreate,
    BookingStatusUpdate,
    BookingResponse,
    BookingListResponse,
    BookingStatusLogResponse,
    BookingHistoryResponse,
    PaginationInfo,
)
from hotel_booking.services import Actor, BookingService, BookingFilters

router = APIRouter()


@router.post("/bookings", response_model=BookingResponse, status_code=201)
async def create_booking(
    booking_data: BookingCreate,
    actor: Actor = Depends(get_actor),
    now: datetime = Depends(get_now),
    db: AsyncSession = Depends(get_db),
):
    """
    Book a room for the calling guest

    The booking starts PENDING and holds its nights against other bookings
    until it is cancelled or completed.
    """
    booking = await BookingService.create_booking(
        db=db,
        actor=actor,
        room_id=booking_data.room_id,
        check_in=booking_data.check_in,
        check_out=booking_data.check_out,
        guests=booking_data.guests,
        special_requests=booking_data.special_requests,
        now=now,
    )
    return BookingResponse.from_booking(booking)


@router.post("/admin/bookings", response_model=BookingResponse, status_code=201)
async def create_confirmed_booking(
    booking_data: AdminBookingCreate,
    actor: Actor = Depends(get_actor),
    now: datetime = Depends(get_now),
    db: AsyncSession = Depends(get_db),
):
    """Book a room on behalf of a guest; the booking is CONFIRMED immediately"""
    booking = await BookingService.create_confirmed_booking(
        db=db,
        actor=actor,
        user_id=booking_data.user_id,
        room_id=booking_data.room_id,
        check_in=booking_data.check_in,
        check_out=booking_data.check_out,
        guests=booking_data.guests,
        special_requests=booking_data.special_requests,
        now=now,
    )
    return BookingResponse.from_booking(booking)


@router.get("/bookings", response_model=BookingListResponse)
async def list_bookings(
    status: Optional[BookingStatus] = Query(None, description="Filter by status"),
    user_id: Optional[int] = Query(None, description="Filter by guest (staff only)"),
    room_id: Optional[int] = Query(None, description="Filter by room"),
    date_from: Optional[date] = Query(None, description="Bookings ending after this date"),
    date_to: Optional[date] = Query(None, description="Bookings starting before this date"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """List bookings, newest first. Guests only see their own."""
    filters = BookingFilters(
        status=status,
        user_id=user_id,
        room_id=room_id,
        date_from=date_from,
        date_to=date_to,
    )
    bookings, total = await BookingService.list_bookings(db, actor, filters, page=page, limit=limit)

    return BookingListResponse(
        bookings=[BookingResponse.from_booking(b) for b in bookings],
        pagination=PaginationInfo(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    booking = await BookingService.get_booking(db, actor, booking_id)
    return BookingResponse.from_booking(booking)


@router.get("/bookings/{booking_id}/history", response_model=BookingHistoryResponse)
async def get_booking_history(
    booking_id: int,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    logs = await BookingService.get_status_history(db, actor, booking_id)
    return BookingHistoryResponse(
        booking_id=booking_id,
        history=[BookingStatusLogResponse.model_validate(log) for log in logs],
    )


@router.patch("/admin/bookings/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    update: BookingStatusUpdate,
    actor: Actor = Depends(get_actor),
    now: datetime = Depends(get_now),
    db: AsyncSession = Depends(get_db),
):
    """
    Move a booking through its lifecycle (staff only)

    - PENDING -> CONFIRMED | CANCELLED
    - CONFIRMED -> COMPLETED | CANCELLED
    """
    booking = await BookingService.transition_status(
        db=db,
        actor=actor,
        booking_id=booking_id,
        new_status=update.status,
        now=now,
        reason=update.reason,
        check_in_time=update.check_in_time,
        check_out_time=update.check_out_time,
    )
    return BookingResponse.from_booking(booking)


@router.delete("/bookings/{booking_id}", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int,
    reason: Optional[str] = Query(None, max_length=1000),
    actor: Actor = Depends(get_actor),
    now: datetime = Depends(get_now),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking. Cancelling an already cancelled or completed booking fails with 409."""
    booking = await BookingService.cancel_booking(
        db=db,
        actor=actor,
        booking_id=booking_id,
        now=now,
        reason=reason,
    )
    return BookingResponse.from_booking(booking)
