from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Plain data object; no database access lives here.
    """

    user_id: int
    full_name: str
    username: str
    password_hash: str
    role: Role
    dept_id: Optional[int]
    email: Optional[str] = None
    manager_id: Optional[int] = None
    position: Optional[str] = None
    start_date: Optional[date] = None
    is_active: bool = True
