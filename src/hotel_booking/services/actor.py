"""
The caller identity every booking operation is evaluated against
"""
from dataclasses import dataclass

from hotel_booking.models.user import UserRole


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: UserRole = UserRole.GUEST

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def can_access(self, owner_id: int) -> bool:
        return self.is_admin or self.user_id == owner_id
