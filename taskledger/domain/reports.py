"""Aggregate figures over a set of tasks. Calendar math is done in UTC."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Mapping

from .entities import TaskEntity
from .enums import BOARD_STATUSES, TaskStatus
from .timekeeping import is_on_time

DATE_RANGES = ("all", "daily", "weekly", "monthly")
TOP_USERS = 10
TREND_DAYS = 7


def to_utc(timestamp_ms: int) -> datetime:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class Report:
    total_tasks: int
    completed_tasks: int
    avg_completion_seconds: float
    on_time_percentage: float
    status_breakdown: dict[TaskStatus, int] = field(default_factory=dict)
    user_performance: list[tuple[str, int]] = field(default_factory=list)
    completion_trend: list[tuple[date, int]] = field(default_factory=list)


def filter_by_range(tasks: Iterable[TaskEntity], date_range: str, now: int) -> list[TaskEntity]:
    tasks = list(tasks)
    current = to_utc(now)
    today = datetime(current.year, current.month, current.day, tzinfo=timezone.utc)

    if date_range == "daily":
        return [t for t in tasks if to_utc(t.created_at).date() == today.date()]
    if date_range == "weekly":
        since = today - timedelta(days=7)
        return [t for t in tasks if to_utc(t.created_at) >= since]
    if date_range == "monthly":
        since = today.replace(day=1)
        return [t for t in tasks if to_utc(t.created_at) >= since]
    return tasks


def status_breakdown(tasks: Iterable[TaskEntity]) -> dict[TaskStatus, int]:
    counts = {status: 0 for status in BOARD_STATUSES}
    for task in tasks:
        if task.status in counts:
            counts[task.status] += 1
    return counts


def user_performance(
    tasks: Iterable[TaskEntity], names: Mapping[str, str], limit: int = TOP_USERS
) -> list[tuple[str, int]]:
    """Seconds spent per assignee on completed tasks, busiest first."""
    totals: dict[str, int] = {}
    for task in tasks:
        if task.status == TaskStatus.COMPLETED:
            totals[task.assigned_to] = totals.get(task.assigned_to, 0) + task.elapsed_time
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)[:limit]
    return [(names.get(email) or email.split("@")[0], seconds) for email, seconds in ranked]


def completion_trend(
    tasks: Iterable[TaskEntity], now: int, days: int = TREND_DAYS
) -> list[tuple[date, int]]:
    today = to_utc(now).date()
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    counts = {day: 0 for day in window}
    for task in tasks:
        if task.status != TaskStatus.COMPLETED or task.completed_at is None:
            continue
        day = to_utc(task.completed_at).date()
        if day in counts:
            counts[day] += 1
    return [(day, counts[day]) for day in window]


def build_report(
    tasks: Iterable[TaskEntity], names: Mapping[str, str], date_range: str, now: int
) -> Report:
    tasks = list(tasks)
    in_range = filter_by_range(tasks, date_range, now)
    completed = [t for t in in_range if t.status == TaskStatus.COMPLETED]

    avg_seconds = 0.0
    on_time = 0.0
    if completed:
        avg_seconds = sum(t.elapsed_time for t in completed) / len(completed)
        on_time = sum(1 for t in completed if is_on_time(t)) / len(completed) * 100

    return Report(
        total_tasks=len(in_range),
        completed_tasks=len(completed),
        avg_completion_seconds=avg_seconds,
        on_time_percentage=on_time,
        status_breakdown=status_breakdown(in_range),
        user_performance=user_performance(in_range, names),
        completion_trend=completion_trend(tasks, now),
    )
