"""Elapsed-time accounting for tasks.

``elapsed_time`` on a task only holds committed seconds from finished work
sessions. A running session is projected on read by :func:`live_elapsed` and
is never written back until the session ends.
"""
from __future__ import annotations

from .entities import TaskEntity
from .enums import TaskStatus


def session_seconds(started_at: int, now: int) -> int:
    return max(0, (now - started_at) // 1000)


def committed_elapsed(task: TaskEntity) -> int:
    return task.elapsed_time


def live_elapsed(task: TaskEntity, now: int) -> int:
    # Display only; transition guards must never read this.
    if task.status == TaskStatus.STARTED and task.started_at is not None:
        return task.elapsed_time + session_seconds(task.started_at, now)
    return task.elapsed_time


def progress_ratio(task: TaskEntity, now: int) -> float:
    if task.estimated_time <= 0:
        return 0.0
    return live_elapsed(task, now) / task.estimated_time


def is_on_time(task: TaskEntity) -> bool:
    return task.elapsed_time <= task.estimated_time


def format_duration(total_seconds: float, verbose: bool = False) -> str:
    if total_seconds < 0:
        total_seconds = 0
    total = int(total_seconds)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)

    if verbose:
        if hours:
            return f"{hours}h {minutes}m {seconds}s"
        if minutes:
            return f"{minutes}m {seconds}s"
        return f"{seconds}s"

    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_clock(total_seconds: int) -> str:
    hours, rest = divmod(max(total_seconds, 0), 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
