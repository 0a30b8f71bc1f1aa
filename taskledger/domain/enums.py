from __future__ import annotations

from enum import StrEnum


class TaskStatus(StrEnum):
    NEW = "new"
    STARTED = "started"
    REVIEW = "review"
    COMPLETED = "completed"
    DELETED = "deleted"


class UserRole(StrEnum):
    ADMIN = "admin"
    USER = "user"


ARCHIVED_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.DELETED})
BOARD_STATUSES = (TaskStatus.NEW, TaskStatus.STARTED, TaskStatus.REVIEW, TaskStatus.COMPLETED)
