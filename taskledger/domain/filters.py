from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Optional

from .entities import TaskEntity, UserEntity
from .enums import TaskStatus
from .permissions import can_view_task

VIEWS = ("active", "archive", "all")
SORT_KEYS = (
    "created_at",
    "updated_at",
    "name",
    "status",
    "assigned_to",
    "estimated_time",
    "elapsed_time",
)


@dataclass(frozen=True)
class TaskFilters:
    view: str = "active"
    search: str | None = None
    status: Optional[TaskStatus] = None
    assigned_to: str | None = None
    sort_by: str = "created_at"
    descending: bool = False

    def scoped_to(self, viewer: UserEntity) -> TaskFilters:
        """Non-admins only ever see tasks assigned to themselves."""
        if viewer.is_admin:
            return self
        return replace(self, assigned_to=viewer.email)


def visible_tasks(tasks: Iterable[TaskEntity], viewer: UserEntity) -> list[TaskEntity]:
    return [task for task in tasks if can_view_task(viewer, task)]

