"""Task state machine.

NEW -> STARTED -> REVIEW -> COMPLETED, with DELETED reachable from every
other status through ``archive``. Each function takes the current task, the
acting user and the current time, and returns a new ``TaskEntity``; the input
is never mutated, so a rejected call leaves the caller's state untouched.
"""
from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Optional

from .entities import TaskEntity, UserEntity
from .enums import TaskStatus
from .errors import InvalidArgumentError, InvalidTransitionError
from .ledger import append_log, append_note
from .permissions import can_approve, can_create_task, can_work_on, require
from .timekeeping import session_seconds

MAX_DESCRIPTION_LENGTH = 250
DEFAULT_APPROVAL_NOTE = "Approved."
EDITABLE_FIELDS = ("name", "description", "url_link", "estimated_time")

LOG_CREATED = "Task created."
LOG_STARTED = "Task started."
LOG_ENDED = "Task ended and sent for review."
LOG_APPROVED = "Task approved."
LOG_ARCHIVED = "Task archived."
LOG_NOTE_ADDED = "Note added."


def new_task_id() -> str:
    return uuid.uuid4().hex


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidArgumentError("Task name must not be empty.")
    return cleaned


def _clean_description(description: str) -> str:
    description = description or ""
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise InvalidArgumentError(
            f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters."
        )
    return description


def _clean_estimate(estimated_time: int) -> int:
    if isinstance(estimated_time, bool) or not isinstance(estimated_time, int):
        raise InvalidArgumentError("Estimated time must be a whole number of seconds.")
    if estimated_time <= 0:
        raise InvalidArgumentError("Estimated time must be positive.")
    return estimated_time


def _clean_url(url_link: Optional[str]) -> Optional[str]:
    if url_link is None:
        return None
    return url_link.strip() or None


def _touch(task: TaskEntity, actor: UserEntity, now: int) -> TaskEntity:
    return replace(task, updated_at=now, updated_by=actor.email)


def _expect(task: TaskEntity, status: TaskStatus, action: str) -> None:
    if task.status != status:
        raise InvalidTransitionError(
            f"Cannot {action} task {task.id}: status is {task.status.value}, "
            f"expected {status.value}."
        )


def create(
    actor: UserEntity,
    now: int,
    *,
    name: str,
    description: str,
    estimated_time: int,
    assigned_to: str,
    url_link: Optional[str] = None,
    task_id: Optional[str] = None,
) -> TaskEntity:
    require(can_create_task(actor), "Only administrators can create tasks.")
    task = TaskEntity(
        id=task_id or new_task_id(),
        name=_clean_name(name),
        description=_clean_description(description),
        estimated_time=_clean_estimate(estimated_time),
        elapsed_time=0,
        status=TaskStatus.NEW,
        assigned_to=assigned_to,
        created_by=actor.email,
        created_at=now,
        updated_at=now,
        updated_by=actor.email,
        url_link=_clean_url(url_link),
    )
    return append_log(task, actor.email, LOG_CREATED, now)


def start(task: TaskEntity, actor: UserEntity, now: int) -> TaskEntity:
    require(can_work_on(actor, task), "Only the assignee or an administrator can start this task.")
    _expect(task, TaskStatus.NEW, "start")
    started = replace(task, status=TaskStatus.STARTED, started_at=now)
    return append_log(_touch(started, actor, now), actor.email, LOG_STARTED, now)


def end(task: TaskEntity, actor: UserEntity, now: int) -> TaskEntity:
    require(can_work_on(actor, task), "Only the assignee or an administrator can end this task.")
    _expect(task, TaskStatus.STARTED, "end")
    if task.started_at is None:
        raise InvalidTransitionError(f"Cannot end task {task.id}: no running session.")

    ended = replace(
        task,
        status=TaskStatus.REVIEW,
        elapsed_time=task.elapsed_time + session_seconds(task.started_at, now),
        started_at=None,
        completed_at=now,
    )
    return append_log(_touch(ended, actor, now), actor.email, LOG_ENDED, now)


def approve(
    task: TaskEntity, actor: UserEntity, now: int, note: Optional[str] = None
) -> TaskEntity:
    require(can_approve(actor, task), "Only administrators can approve tasks.")
    _expect(task, TaskStatus.REVIEW, "approve")
    text = note if note and note.strip() else DEFAULT_APPROVAL_NOTE
    approved = _touch(replace(task, status=TaskStatus.COMPLETED), actor, now)
    approved = append_log(approved, actor.email, LOG_APPROVED, now)
    return append_note(approved, actor.email, text, now)


def archive(
    task: TaskEntity, actor: UserEntity, now: int, *, log_entry: bool = True
) -> TaskEntity:
    """Move a task to DELETED. Archiving a DELETED task returns it unchanged."""
    require(can_work_on(actor, task), "Only the assignee or an administrator can archive this task.")
    if task.status == TaskStatus.DELETED:
        return task

    elapsed = task.elapsed_time
    if task.status == TaskStatus.STARTED and task.started_at is not None:
        elapsed += session_seconds(task.started_at, now)

    archived = replace(
        task,
        status=TaskStatus.DELETED,
        elapsed_time=elapsed,
        started_at=None,
        deleted_at=now,
        deleted_by=actor.email,
    )
    archived = _touch(archived, actor, now)
    if log_entry:
        archived = append_log(archived, actor.email, LOG_ARCHIVED, now)
    return archived


def edit(task: TaskEntity, actor: UserEntity, now: int, **changes) -> TaskEntity:
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise InvalidArgumentError(f"Fields cannot be edited: {', '.join(sorted(unknown))}.")
    require(can_work_on(actor, task), "Only the assignee or an administrator can edit this task.")
    if task.status == TaskStatus.DELETED:
        raise InvalidTransitionError(f"Cannot edit task {task.id}: it has been archived.")

    cleaners = {
        "name": _clean_name,
        "description": _clean_description,
        "url_link": _clean_url,
        "estimated_time": _clean_estimate,
    }
    cleaned = {key: cleaners[key](value) for key, value in changes.items()}

    entries = []
    if "name" in cleaned and cleaned["name"] != task.name:
        entries.append(f'Task name changed to "{cleaned["name"]}"')
    if "description" in cleaned and cleaned["description"] != task.description:
        entries.append("Description updated.")
    if "url_link" in cleaned and cleaned["url_link"] != task.url_link:
        entries.append("URL link updated.")
    if "estimated_time" in cleaned and cleaned["estimated_time"] != task.estimated_time:
        entries.append("Estimated time updated.")

    edited = _touch(replace(task, **cleaned), actor, now)
    for description in entries:
        edited = append_log(edited, actor.email, description, now)
    return edited


def add_note(task: TaskEntity, actor: UserEntity, now: int, text: str) -> TaskEntity:
    require(can_work_on(actor, task), "Only the assignee or an administrator can add notes.")
    if task.status == TaskStatus.DELETED:
        raise InvalidTransitionError(f"Cannot add a note to task {task.id}: it has been archived.")
    noted = append_note(task, actor.email, text, now)
    return append_log(_touch(noted, actor, now), actor.email, LOG_NOTE_ADDED, now)
