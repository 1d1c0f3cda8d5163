from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import constr

from app.schemas.common import CamelModel

UserRole = Literal["user", "admin"]


class UserCreate(CamelModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=120)  # type: ignore[valid-type]
    email: constr(strip_whitespace=True, min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")  # type: ignore[valid-type]
    email_verified: bool = False
    role: UserRole = "user"


class UserUpdate(CamelModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=120) | None = None  # type: ignore[valid-type]
    email: constr(strip_whitespace=True, min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$") | None = None  # type: ignore[valid-type]
    email_verified: bool | None = None
    role: UserRole | None = None


class UserOut(CamelModel):
    id: int
    name: str
    email: str
    email_verified: bool
    role: UserRole
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserListResponse(CamelModel):
    users: list[UserOut]
    total: int


class WorkspaceCreate(CamelModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=120)  # type: ignore[valid-type]
    description: constr(strip_whitespace=True, max_length=2000) | None = None  # type: ignore[valid-type]


class WorkspaceUpdate(CamelModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=120) | None = None  # type: ignore[valid-type]
    description: constr(strip_whitespace=True, max_length=2000) | None = None  # type: ignore[valid-type]


class WorkspaceOut(CamelModel):
    id: int
    name: str
    description: str | None = None
    created_at: datetime | None = None


class WorkspaceListResponse(CamelModel):
    workspaces: list[WorkspaceOut]
    total: int
