from __future__ import annotations

from datetime import date

import pytest

from taskledger.domain.enums import TaskStatus
from taskledger.domain.errors import InvalidArgumentError
from taskledger.services.report_service import ReportService


def _complete(task_service, task, worker, admin, clock, seconds):
    task_service.start_task(worker, task.id)
    clock.advance(seconds)
    task_service.end_task(worker, task.id)
    return task_service.approve_task(admin, task.id)


@pytest.fixture()
def reports(task_repo, user_repo, clock) -> ReportService:
    return ReportService(task_repo, user_repo, clock)


def test_report_figures(reports, task_service, make_task, admin, alice, bob, clock) -> None:
    on_time = make_task(alice.email, estimated_time=600)
    late = make_task(bob.email, estimated_time=60)
    make_task(alice.email)
    _complete(task_service, on_time, alice, admin, clock, 300)
    _complete(task_service, late, bob, admin, clock, 120)

    report = reports.build_report(admin)

    assert report.total_tasks == 3
    assert report.completed_tasks == 2
    assert report.avg_completion_seconds == pytest.approx(210)
    assert report.on_time_percentage == pytest.approx(50)
    assert report.status_breakdown[TaskStatus.NEW] == 1
    assert report.status_breakdown[TaskStatus.COMPLETED] == 2
    assert report.user_performance == [("Alice", 300), ("Bob", 120)]
    assert report.completion_trend[-1] == (date(2026, 1, 1), 2)
    assert len(report.completion_trend) == 7


def test_report_respects_visibility(reports, task_service, make_task, admin, alice, bob, clock) -> None:
    make_task(alice.email)
    theirs = make_task(bob.email)
    _complete(task_service, theirs, bob, admin, clock, 30)

    report = reports.build_report(alice, assignee=bob.email)

    assert report.total_tasks == 1
    assert report.completed_tasks == 0
    assert report.user_performance == []


def test_report_assignee_filter_for_admin(reports, make_task, admin, alice, bob) -> None:
    make_task(alice.email)
    make_task(bob.email)

    assert reports.build_report(admin, assignee=bob.email).total_tasks == 1


def test_report_date_range(reports, make_task, admin, alice, clock) -> None:
    make_task(alice.email)
    clock.advance(8 * 86400)
    make_task(alice.email)

    assert reports.build_report(admin, date_range="daily").total_tasks == 1
    assert reports.build_report(admin, date_range="weekly").total_tasks == 1
    assert reports.build_report(admin, date_range="monthly").total_tasks == 2
    assert reports.build_report(admin, date_range="all").total_tasks == 2


def test_report_rejects_unknown_range(reports, admin) -> None:
    with pytest.raises(InvalidArgumentError):
        reports.build_report(admin, date_range="yearly")
