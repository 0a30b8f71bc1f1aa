from __future__ import annotations

from taskledger.domain.clock import Clock, SystemClock
from taskledger.domain.entities import UserEntity
from taskledger.domain.errors import InvalidArgumentError
from taskledger.domain.filters import TaskFilters, visible_tasks
from taskledger.domain.reports import DATE_RANGES, Report, build_report
from taskledger.infra.repository import TaskRepository, UserRepository


class ReportService:
    def __init__(self, tasks: TaskRepository, users: UserRepository, clock: Clock | None = None) -> None:
        self._tasks = tasks
        self._users = users
        self._clock = clock or SystemClock()

    def build_report(self, viewer: UserEntity, assignee: str = "all", date_range: str = "all") -> Report:
        if date_range not in DATE_RANGES:
            raise InvalidArgumentError(f"Unknown date range {date_range!r}.")

        filters = TaskFilters(view="all")
        if assignee != "all" and viewer.is_admin:
            filters = TaskFilters(view="all", assigned_to=assignee)
        tasks = visible_tasks(self._tasks.list_tasks(filters.scoped_to(viewer)), viewer)

        names = {user.email: user.name for user in self._users.list_users()}
        return build_report(tasks, names, date_range, self._clock.now_ms())
