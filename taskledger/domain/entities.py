from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .enums import ARCHIVED_STATUSES, TaskStatus, UserRole

# Timestamps are epoch milliseconds, durations are whole seconds. ``version``
# is the stored row version the entity was read at; 0 means never stored.


@dataclass(frozen=True)
class TaskLogEntry:
    timestamp: int
    user: str
    description: str


@dataclass(frozen=True)
class TaskNote:
    timestamp: int
    user: str
    text: str


@dataclass(frozen=True)
class TaskEntity:
    id: str
    name: str
    description: str
    estimated_time: int
    elapsed_time: int
    status: TaskStatus
    assigned_to: str
    created_by: str
    created_at: int
    updated_at: int
    updated_by: Optional[str]
    started_at: Optional[int] = None
    completed_at: Optional[int] = None
    deleted_at: Optional[int] = None
    deleted_by: Optional[str] = None
    url_link: Optional[str] = None
    logs: tuple[TaskLogEntry, ...] = ()
    notes: tuple[TaskNote, ...] = ()
    version: int = 0

    @property
    def is_archived(self) -> bool:
        return self.status in ARCHIVED_STATUSES


@dataclass(frozen=True)
class UserEntity:
    id: str
    name: str
    email: str
    role: UserRole
    is_active: bool
    created_at: int
    updated_at: int
    created_by: Optional[str]
    updated_by: Optional[str]
    deleted_at: Optional[int] = None
    deleted_by: Optional[str] = None
    version: int = 0

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def has_email(self, email: str) -> bool:
        return self.email.casefold() == email.strip().casefold()
