from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable, Optional

from taskledger.config import SETTINGS
from taskledger.domain import lifecycle
from taskledger.domain.clock import Clock, SystemClock
from taskledger.domain.entities import TaskEntity, UserEntity
from taskledger.domain.errors import (
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
)
from taskledger.domain.filters import TaskFilters, visible_tasks
from taskledger.domain.ledger import is_extension_of
from taskledger.domain.permissions import can_create_task, can_view_task, can_work_on, require
from taskledger.domain.timekeeping import live_elapsed, progress_ratio
from taskledger.infra.repository import TaskRepository, UserRepository

from .locking import WRITE_LOCK
from .notifications import LoggingReviewNotifier, ReviewNotifier

logger = logging.getLogger(__name__)

# Fields a generic update may not touch; they only move through lifecycle operations.
PROTECTED_FIELDS = (
    "assigned_to",
    "created_by",
    "created_at",
    "elapsed_time",
    "started_at",
    "completed_at",
    "deleted_at",
    "deleted_by",
)


class TaskService:
    def __init__(
        self,
        repo: TaskRepository,
        users: UserRepository,
        clock: Clock | None = None,
        notifier: ReviewNotifier | None = None,
        archive_appends_log: bool | None = None,
    ) -> None:
        self._repo = repo
        self._users = users
        self._clock = clock or SystemClock()
        self._notifier = notifier or LoggingReviewNotifier(SETTINGS.review_notify_email)
        if archive_appends_log is None:
            archive_appends_log = SETTINGS.archive_appends_log
        self._archive_appends_log = archive_appends_log

    def list_tasks(self, viewer: UserEntity, filters: TaskFilters | None = None) -> list[TaskEntity]:
        scoped = (filters or TaskFilters()).scoped_to(viewer)
        return visible_tasks(self._repo.list_tasks(scoped), viewer)

    def get_task(self, viewer: UserEntity, task_id: str) -> TaskEntity:
        task = self._load(task_id)
        require(can_view_task(viewer, task), "You are not allowed to view this task.")
        return task

    def live_elapsed(self, viewer: UserEntity, task_id: str) -> int:
        return live_elapsed(self.get_task(viewer, task_id), self._clock.now_ms())

    def progress(self, viewer: UserEntity, task_id: str) -> float:
        return progress_ratio(self.get_task(viewer, task_id), self._clock.now_ms())

    def create_task(
        self,
        actor: UserEntity,
        *,
        name: str,
        description: str,
        estimated_time: int,
        assigned_to: str,
        url_link: Optional[str] = None,
    ) -> TaskEntity:
        require(can_create_task(actor), "Only administrators can create tasks.")
        with WRITE_LOCK:
            assignee = self._users.get_user_by_email(assigned_to)
            if not assignee or not assignee.is_active:
                raise InvalidArgumentError(f"Cannot assign a task to {assigned_to}: no such active user.")

            task = lifecycle.create(
                actor,
                self._clock.now_ms(),
                name=name,
                description=description,
                estimated_time=estimated_time,
                assigned_to=assignee.email,
                url_link=url_link,
            )
            created = self._repo.create_task(task)
        logger.info("Task %s created by %s for %s", created.id, actor.email, created.assigned_to)
        return created

    def start_task(self, actor: UserEntity, task_id: str) -> TaskEntity:
        task = self._transition(task_id, lambda t, now: lifecycle.start(t, actor, now))
        logger.info("Task %s started by %s", task.id, actor.email)
        return task

    def end_task(self, actor: UserEntity, task_id: str) -> TaskEntity:
        task = self._transition(task_id, lambda t, now: lifecycle.end(t, actor, now))
        logger.info("Task %s sent for review by %s, elapsed=%ss", task.id, actor.email, task.elapsed_time)
        try:
            self._notifier.review_requested(task)
        except Exception:  # noqa: BLE001
            logger.exception("Review notification failed for task %s", task.id)
        return task

    def approve_task(self, actor: UserEntity, task_id: str, note: str | None = None) -> TaskEntity:
        task = self._transition(task_id, lambda t, now: lifecycle.approve(t, actor, now, note))
        logger.info("Task %s approved by %s", task.id, actor.email)
        return task

    def edit_task(self, actor: UserEntity, task_id: str, **changes) -> TaskEntity:
        return self._transition(task_id, lambda t, now: lifecycle.edit(t, actor, now, **changes))

    def add_note(self, actor: UserEntity, task_id: str, text: str) -> TaskEntity:
        return self._transition(task_id, lambda t, now: lifecycle.add_note(t, actor, now, text))

    def archive_task(self, actor: UserEntity, task_id: str) -> TaskEntity:
        return self.archive_tasks(actor, [task_id])[0]

    def archive_tasks(self, actor: UserEntity, task_ids: Iterable[str]) -> list[TaskEntity]:
        """Archive a batch: every id is checked before anything is written."""
        ordered_ids = list(dict.fromkeys(task_ids))
        with WRITE_LOCK:
            now = self._clock.now_ms()
            current = [self._load(task_id) for task_id in ordered_ids]
            results = [
                lifecycle.archive(task, actor, now, log_entry=self._archive_appends_log)
                for task in current
            ]
            changed = [new for old, new in zip(current, results) if new is not old]
            if changed:
                saved = {task.id: task for task in self._repo.save_tasks(changed)}
                if len(saved) != len(changed):
                    raise NotFoundError("One or more tasks disappeared while archiving.")
                results = [saved.get(task.id, task) for task in results]
        logger.info("%s archived %s task(s), %s changed", actor.email, len(results), len(changed))
        return results

    def update_task(self, actor: UserEntity, task: TaskEntity) -> TaskEntity:
        """Save a caller-assembled task.

        Editable fields go through the same per-field logging as ``edit_task``;
        ledger entries the caller appended are kept after those. Status
        changes, rewritten ledger entries and protected fields are rejected.
        """
        with WRITE_LOCK:
            current = self._load(task.id)
            require(can_work_on(actor, current), "Only the assignee or an administrator can update this task.")
            if task.status != current.status:
                raise InvalidTransitionError("Status changes must use the lifecycle operations.")
            if not is_extension_of(current, task):
                raise InvalidArgumentError("Task logs and notes are append-only.")
            for name in PROTECTED_FIELDS:
                if getattr(task, name) != getattr(current, name):
                    raise InvalidArgumentError(f"Field {name} cannot be changed by an update.")
            extra_notes = task.notes[len(current.notes):]
            if any(not note.text.strip() for note in extra_notes):
                raise InvalidArgumentError("Note text must not be empty.")

            now = self._clock.now_ms()
            edited = lifecycle.edit(
                current,
                actor,
                now,
                **{name: getattr(task, name) for name in lifecycle.EDITABLE_FIELDS},
            )
            updated = replace(
                edited,
                logs=edited.logs + task.logs[len(current.logs):],
                notes=edited.notes + extra_notes,
            )
            saved = self._repo.save_task(updated)
        if saved is None:
            raise NotFoundError(f"Task {task.id} not found.")
        return saved

    def _load(self, task_id: str) -> TaskEntity:
        task = self._repo.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found.")
        return task

    def _transition(
        self, task_id: str, apply: Callable[[TaskEntity, int], TaskEntity]
    ) -> TaskEntity:
        with WRITE_LOCK:
            task = self._load(task_id)
            try:
                updated = apply(task, self._clock.now_ms())
            except (InvalidTransitionError, PermissionDeniedError) as exc:
                logger.warning("Rejected operation on task %s: %s", task_id, exc)
                raise
            if updated is task:
                return task
            saved = self._repo.save_task(updated)
        if saved is None:
            raise NotFoundError(f"Task {task_id} not found.")
        return saved
