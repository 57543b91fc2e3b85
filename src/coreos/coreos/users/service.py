from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_min_length, require_non_empty
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .model import User
from .repository import UserRepository


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    name: str
    email: str
    roles: tuple[str, ...]
    permissions: tuple[str, ...]
    is_super_admin: bool


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository, *, super_admin_email: Optional[str] = None):
        self._users = users
        self._super_admin_email = super_admin_email

    def authenticate(self, email: str, password: str) -> SessionUser:
        user = self._users.get_by_email((email or "").strip().lower())
        if not user or not user.is_active:
            raise AuthenticationError("These credentials do not match our records.")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # placeholder or corrupted hashes
            ok = False

        if not ok:
            raise AuthenticationError("These credentials do not match our records.")

        return self.session_user(user)

    def session_user(self, user: User) -> SessionUser:
        return SessionUser(
            user_id=user.user_id,
            name=user.name,
            email=user.email,
            roles=user.roles,
            permissions=user.permissions,
            is_super_admin=user.is_super_admin(self._super_admin_email),
        )


class UserService:
    """Use case: look up and manage users."""

    def __init__(self, users: UserRepository):
        self._users = users

    def get_user(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found.")
        return user

    def list_users(self, *, active_only: bool = True) -> Sequence[User]:
        return self._users.list_all(active_only=active_only)

    def create_account(
        self,
        *,
        current_user: User,
        name: str,
        email: str,
        password: str,
        position_id: Optional[int] = None,
        manager_id: Optional[int] = None,
        start_date: Optional[date] = None,
    ) -> int:
        if not current_user.has_any_permission("employees.manage") and not current_user.is_super_admin():
            raise AuthorizationError("You do not have permission to create users.")

        name = require_non_empty(name, "name")
        email = require_non_empty(email, "email").lower()
        require_min_length(password, "password", 8)

        if "@" not in email:
            raise ValidationError("The email must be a valid email address.", errors={"email": ["The email must be a valid email address."]})
        if self._users.get_by_email(email):
            raise ValidationError("The email has already been taken.", errors={"email": ["The email has already been taken."]})

        return self._users.create_user(
            name=name,
            email=email,
            password_hash=generate_password_hash(password),
            position_id=position_id,
            manager_id=manager_id,
            start_date=start_date,
        )

    def deactivate(self, *, current_user: User, user_id: int) -> None:
        if not current_user.has_any_permission("employees.manage") and not current_user.is_super_admin():
            raise AuthorizationError("You do not have permission to deactivate users.")
        if int(user_id) == current_user.user_id:
            raise ValidationError("You cannot deactivate your own account.")
        self.get_user(user_id)
        if not self._users.set_active(int(user_id), is_active=False):
            raise ValidationError("Failed to deactivate user.")
