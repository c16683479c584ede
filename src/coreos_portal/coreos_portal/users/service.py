from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import optional_text, require_min_length, require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    full_name: str
    role: Role
    dept_id: Optional[int]
    manager_id: Optional[int]
    position: Optional[str]


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, username: str, password: str) -> SessionUser:
        user = self._users.get_by_username((username or "").strip())
        if not user or not user.is_active:
            raise AuthenticationError("Invalid username or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # placeholder hashes like 'CHANGE_ME' in seed data
            ok = False

        if not ok:
            raise AuthenticationError("Invalid username or password")

        logger.info("User %s signed in", user.user_id)
        return SessionUser(
            user_id=user.user_id,
            full_name=user.full_name,
            role=user.role,
            dept_id=user.dept_id,
            manager_id=user.manager_id,
            position=user.position,
        )


class UserService:
    """Use case: manage users (admin)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def get_user(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    def create_account(
        self,
        *,
        full_name: str,
        username: str,
        password: str,
        role: Role,
        dept_id: Optional[int] = None,
        manager_id: Optional[int] = None,
        email: Optional[str] = None,
        position: Optional[str] = None,
    ) -> int:
        full_name = require_non_empty(full_name, "Full name")
        username = require_non_empty(username, "Username")
        require_min_length(password, "Password", 6)

        if self._users.get_by_username(username):
            raise ValidationError("Username already exists")

        if role == Role.ADMIN:
            raise ValidationError("Admin accounts cannot be created here")

        if manager_id:
            manager = self._users.get_by_id(int(manager_id))
            if not manager or manager.role == Role.EMPLOYEE:
                raise ValidationError("Manager must be an existing manager or admin")

        user_id = self._users.create_user(
            full_name=full_name,
            username=username,
            email=optional_text(email),
            password_hash=generate_password_hash(password),
            role=role,
            dept_id=int(dept_id) if dept_id else None,
            manager_id=int(manager_id) if manager_id else None,
            position=optional_text(position),
        )
        logger.info("Created %s account %s (%s)", role.value, user_id, username)
        return user_id

    def set_manager(self, *, current_role: Role, user_id: int, manager_id: Optional[int]) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("You do not have permission")

        user = self.get_user(user_id)
        if manager_id:
            if int(manager_id) == user.user_id:
                raise ValidationError("A user cannot manage themselves")
            manager = self._users.get_by_id(int(manager_id))
            if not manager or manager.role == Role.EMPLOYEE:
                raise ValidationError("Manager must be an existing manager or admin")

        if not self._users.set_manager(user.user_id, manager_id=int(manager_id) if manager_id else None):
            raise ValidationError("Updating the manager failed")

    def set_active(self, *, current_role: Role, user_id: int, is_active: bool) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("You do not have permission")
        user = self.get_user(user_id)
        if user.role == Role.ADMIN and not is_active:
            raise ValidationError("Admin accounts cannot be deactivated")
        self._users.set_active(user.user_id, is_active=is_active)

    def list_admin_view(self) -> Sequence[dict]:
        return self._users.list_admin_view()

    def list_team(self, *, manager_id: int) -> Sequence[User]:
        return self._users.list_direct_reports(int(manager_id))

    def delete_user(self, *, current_role: Role, user_id: int) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("You do not have permission")

        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.role == Role.ADMIN:
            raise ValidationError("Admin accounts cannot be deleted")

        if not self._users.delete_by_id(user_id):
            raise ValidationError("Deleting the user failed")
        logger.info("Deleted user %s", user_id)
