"""Shared API dependencies: caller identity and clock"""
from datetime import datetime
from typing import Optional
from fastapi import Header, HTTPException

from hotel_booking.models.user import UserRole
from hotel_booking.services import Actor


async def get_actor(
    user_id: Optional[int] = Header(None, alias="X-User-Id", description="Verified by the auth gateway"),
    role: UserRole = Header(UserRole.GUEST, alias="X-User-Role"),
) -> Actor:
    if user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return Actor(user_id=user_id, role=role)


def get_now() -> datetime:
    """Request clock, overridden in tests"""
    return datetime.utcnow()
