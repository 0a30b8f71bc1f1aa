"""Append-only audit trail attached to each task.

Entries are kept in insertion order. Nothing here edits or removes an entry;
the only rewrite of stored entries is the email cascade run by the user
repository when an address changes.
"""
from __future__ import annotations

from dataclasses import replace

from .entities import TaskEntity, TaskLogEntry, TaskNote
from .errors import InvalidArgumentError


def append_log(task: TaskEntity, actor: str, description: str, now: int) -> TaskEntity:
    entry = TaskLogEntry(timestamp=now, user=actor, description=description)
    return replace(task, logs=task.logs + (entry,))


def append_note(task: TaskEntity, actor: str, text: str, now: int) -> TaskEntity:
    if not text or not text.strip():
        raise InvalidArgumentError("Note text must not be empty.")
    note = TaskNote(timestamp=now, user=actor, text=text)
    return replace(task, notes=task.notes + (note,))


def is_extension_of(current: TaskEntity, candidate: TaskEntity) -> bool:
    """True when ``candidate`` keeps every stored entry and only appends."""
    logs_kept = candidate.logs[: len(current.logs)] == current.logs
    notes_kept = candidate.notes[: len(current.notes)] == current.notes
    return logs_kept and notes_kept

