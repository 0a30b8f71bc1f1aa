from __future__ import annotations

from dataclasses import replace

from taskledger.domain.entities import TaskEntity, UserEntity
from taskledger.domain.enums import TaskStatus
from taskledger.domain.errors import DuplicateEmailError
from taskledger.domain.filters import SORT_KEYS, TaskFilters

# 2026-01-01T00:00:00Z
START_MS = 1_767_225_600_000


def references(task: TaskEntity, email: str) -> bool:
    """True when any identity field or ledger entry points at ``email``."""
    if email in (task.assigned_to, task.created_by, task.updated_by, task.deleted_by):
        return True
    return any(log.user == email for log in task.logs) or any(
        note.user == email for note in task.notes
    )


def rewrite_identity(task: TaskEntity, old_email: str, new_email: str) -> TaskEntity:
    if old_email == new_email or not references(task, old_email):
        return task

    def swap(value):
        return new_email if value == old_email else value

    return replace(
        task,
        assigned_to=swap(task.assigned_to),
        created_by=swap(task.created_by),
        updated_by=swap(task.updated_by),
        deleted_by=swap(task.deleted_by),
        logs=tuple(replace(log, user=swap(log.user)) for log in task.logs),
        notes=tuple(replace(note, user=swap(note.user)) for note in task.notes),
    )


def matches(filters: TaskFilters, task: TaskEntity) -> bool:
    if filters.view == "active" and task.status == TaskStatus.DELETED:
        return False
    if filters.view == "archive" and not task.is_archived:
        return False
    if filters.status is not None and task.status != filters.status:
        return False
    if filters.assigned_to is not None and task.assigned_to != filters.assigned_to:
        return False
    if filters.search:
        needle = filters.search.casefold()
        if needle not in task.name.casefold() and needle not in task.description.casefold():
            return False
    return True


class ManualClock:
    def __init__(self, now_ms: int = START_MS) -> None:
        self.now = now_ms

    def now_ms(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class FakeTaskRepo:
    def __init__(self) -> None:
        self.tasks: dict[str, TaskEntity] = {}
        self.saves = 0

    def list_tasks(self, filters: TaskFilters | None = None) -> list[TaskEntity]:
        filters = filters or TaskFilters(view="all")
        key = filters.sort_by if filters.sort_by in SORT_KEYS else "created_at"
        found = [t for t in self.tasks.values() if matches(filters, t)]
        return sorted(found, key=lambda t: getattr(t, key), reverse=filters.descending)

    def get_task(self, task_id: str) -> TaskEntity | None:
        return self.tasks.get(task_id)

    def create_task(self, task: TaskEntity) -> TaskEntity:
        self.tasks[task.id] = task
        return task

    def save_task(self, task: TaskEntity) -> TaskEntity | None:
        saved = self.save_tasks([task])
        return saved[0] if saved else None

    def save_tasks(self, tasks) -> list[TaskEntity]:
        tasks = list(tasks)
        if any(task.id not in self.tasks for task in tasks):
            return []
        for task in tasks:
            self.tasks[task.id] = task
        self.saves += 1
        return tasks


class FakeUserRepo:
    def __init__(self, tasks: FakeTaskRepo) -> None:
        self.users: dict[str, UserEntity] = {}
        self._tasks = tasks

    def list_users(self) -> list[UserEntity]:
        return sorted(self.users.values(), key=lambda u: (u.created_at, u.email.casefold()))

    def get_user(self, user_id: str) -> UserEntity | None:
        return self.users.get(user_id)

    def get_user_by_email(self, email: str) -> UserEntity | None:
        return next((u for u in self.users.values() if u.has_email(email)), None)

    def create_user(self, user: UserEntity) -> UserEntity:
        if self.get_user_by_email(user.email):
            raise DuplicateEmailError("A user with this email already exists.")
        self.users[user.id] = user
        return user

    def update_user(self, user: UserEntity, previous_email: str | None = None) -> UserEntity | None:
        if user.id not in self.users:
            return None
        self.users[user.id] = user
        if previous_email is not None and previous_email != user.email:
            for task_id, task in list(self._tasks.tasks.items()):
                self._tasks.tasks[task_id] = rewrite_identity(task, previous_email, user.email)
            for user_id, other in list(self.users.items()):
                swap = lambda v: user.email if v == previous_email else v  # noqa: E731
                self.users[user_id] = replace(
                    other,
                    created_by=swap(other.created_by),
                    updated_by=swap(other.updated_by),
                    deleted_by=swap(other.deleted_by),
                )
        return self.users[user.id]


class RecordingNotifier:
    def __init__(self) -> None:
        self.reviewed: list[str] = []

    def review_requested(self, task: TaskEntity) -> None:
        self.reviewed.append(task.id)
