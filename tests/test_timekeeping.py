from __future__ import annotations

from dataclasses import replace

import pytest

from taskledger.domain.entities import TaskEntity
from taskledger.domain.enums import TaskStatus
from taskledger.domain.timekeeping import (
    committed_elapsed,
    format_clock,
    format_duration,
    is_on_time,
    live_elapsed,
    progress_ratio,
)

T0 = 1_767_225_600_000


def _task(**overrides) -> TaskEntity:
    base = TaskEntity(
        id="t1",
        name="Deploy staging",
        description="",
        estimated_time=1800,
        elapsed_time=600,
        status=TaskStatus.NEW,
        assigned_to="u@x.com",
        created_by="admin@example.com",
        created_at=T0,
        updated_at=T0,
        updated_by="admin@example.com",
    )
    return replace(base, **overrides)


def test_live_elapsed_adds_running_session() -> None:
    task = _task(status=TaskStatus.STARTED, started_at=T0)

    assert live_elapsed(task, T0 + 30_500) == 630
    assert committed_elapsed(task) == 600


def test_live_elapsed_ignores_session_when_not_started() -> None:
    task = _task(status=TaskStatus.REVIEW)

    assert live_elapsed(task, T0 + 999_000) == 600


def test_live_elapsed_clamps_clock_skew() -> None:
    task = _task(status=TaskStatus.STARTED, started_at=T0)

    assert live_elapsed(task, T0 - 5000) == 600


def test_progress_ratio() -> None:
    task = _task(status=TaskStatus.STARTED, started_at=T0)

    assert progress_ratio(task, T0 + 300_000) == pytest.approx(0.5)
    assert progress_ratio(_task(estimated_time=0), T0) == 0.0


def test_on_time() -> None:
    assert is_on_time(_task(elapsed_time=1800))
    assert not is_on_time(_task(elapsed_time=1801))


@pytest.mark.parametrize(
    "seconds, short, verbose",
    [
        (0, "0m", "0s"),
        (59, "0m", "59s"),
        (125, "2m", "2m 5s"),
        (3903, "1h 5m", "1h 5m 3s"),
        (-10, "0m", "0s"),
    ],
)
def test_format_duration(seconds: int, short: str, verbose: str) -> None:
    assert format_duration(seconds) == short
    assert format_duration(seconds, verbose=True) == verbose


def test_format_clock() -> None:
    assert format_clock(3725) == "01:02:05"
