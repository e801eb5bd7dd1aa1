"""Module: context."""

from dataclasses import dataclass

from app.core.exceptions import PermissionDenied, SUPERADMIN_REQUIRED
from app.db.models.user import User


# Per-request caller information handed to service functions explicitly.
@dataclass(frozen=True)
class RequestContext:
    current_user: User | None = None

    @property
    def is_superadmin(self) -> bool:
        return bool(self.current_user is not None and self.current_user.superadmin)

    def require_user(self) -> User:
        if self.current_user is None:
            raise PermissionDenied("You must be signed in to perform this action!")
        return self.current_user

    def require_superadmin(self) -> User:
        if not self.is_superadmin:
            raise PermissionDenied(SUPERADMIN_REQUIRED)
        return self.current_user
