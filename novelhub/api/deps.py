"""
Request identity. Authentication happens in the gateway in front of this
service; it forwards the authenticated user as X-User-Id / X-User-Role.
"""
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException

from novelhub.core.exceptions import PermissionDenied
from novelhub.services.events.service import EventPublisher


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_current_user(
    x_user_id: str | None = Header(None),
    x_user_role: str | None = Header(None),
) -> CurrentUser:
    if not x_user_id:
        raise HTTPException(401, "Authentication required")
    return CurrentUser(id=x_user_id, role=(x_user_role or "user").lower())


def get_admin_user(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise PermissionDenied("Admin only", {"user_id": user.id})
    return user


def get_event_publisher() -> EventPublisher:
    return EventPublisher()
