from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from taskledger.config import SETTINGS
from taskledger.domain.clock import SystemClock
from taskledger.domain.entities import TaskEntity, UserEntity
from taskledger.domain.enums import TaskStatus, UserRole
from taskledger.domain.errors import InvalidArgumentError, TaskLedgerError
from taskledger.domain.filters import SORT_KEYS, VIEWS, TaskFilters
from taskledger.domain.reports import DATE_RANGES
from taskledger.domain.timekeeping import format_clock, format_duration, live_elapsed, progress_ratio
from taskledger.infra.db import init_db
from taskledger.infra.logging import setup_logging
from taskledger.infra.repository import TaskRepository, UserRepository
from taskledger.services.auth_service import AuthService, Session
from taskledger.services.report_service import ReportService
from taskledger.services.task_service import TaskService
from taskledger.services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    tasks: TaskService
    users: UserService
    reports: ReportService
    session: Session


def build_services() -> Services:
    task_repo = TaskRepository()
    user_repo = UserRepository()
    return Services(
        tasks=TaskService(task_repo, user_repo),
        users=UserService(user_repo),
        reports=ReportService(task_repo, user_repo),
        session=Session(AuthService(user_repo)),
    )


def _fmt_ts(timestamp: int | None) -> str:
    if timestamp is None:
        return "-"
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _print_task_row(task: TaskEntity, now: int) -> None:
    print(
        f"{task.id}  {task.status.value:<9}  {task.assigned_to:<28}  "
        f"{format_clock(live_elapsed(task, now))} / {format_duration(task.estimated_time)}  {task.name}"
    )


def _print_task(task: TaskEntity, now: int) -> None:
    print(f"{task.name} [{task.status.value}]")
    print(f"  id:          {task.id}")
    print(f"  assigned to: {task.assigned_to}")
    print(f"  created:     {_fmt_ts(task.created_at)} by {task.created_by}")
    print(f"  updated:     {_fmt_ts(task.updated_at)} by {task.updated_by or '-'}")
    print(f"  estimate:    {format_duration(task.estimated_time)}")
    print(
        f"  elapsed:     {format_duration(live_elapsed(task, now), verbose=True)} "
        f"({progress_ratio(task, now):.0%})"
    )
    if task.url_link:
        print(f"  link:        {task.url_link}")
    if task.description:
        print(f"  {task.description}")
    if task.notes:
        print("  notes:")
        for note in reversed(task.notes):
            print(f"    {_fmt_ts(note.timestamp)} {note.user}: {note.text}")
    print("  logs:")
    for log in reversed(task.logs):
        print(f"    [{_fmt_ts(log.timestamp)}] {log.user}: {log.description}")


def _print_user(user: UserEntity) -> None:
    state = "active" if user.is_active else "inactive"
    print(f"{user.id}  {user.role.value:<5}  {state:<8}  {user.email:<32}  {user.name}")


def _estimate(args: argparse.Namespace) -> int | None:
    if args.hours is None and args.minutes is None:
        return None
    return (args.hours or 0) * 3600 + (args.minutes or 0) * 60


def _require_actor(services: Services, args: argparse.Namespace) -> UserEntity:
    if not args.actor:
        raise InvalidArgumentError("This command needs the acting user: pass --as EMAIL.")
    return services.session.login(args.actor)


def cmd_init_db(services: Services, args: argparse.Namespace) -> None:
    init_db(create_schema=True)
    email = args.admin_email or SETTINGS.bootstrap_admin_email
    if not email:
        print("Schema ready.")
        return
    admin = services.users.bootstrap_admin(email, args.admin_name or SETTINGS.bootstrap_admin_name)
    if admin:
        print(f"Schema ready. Administrator {admin.email} created.")
    else:
        print("Schema ready. Directory already has users; nothing seeded.")


def cmd_users(services: Services, args: argparse.Namespace) -> None:
    actor = _require_actor(services, args)
    if args.users_command == "list":
        for user in services.users.list_users():
            _print_user(user)
    elif args.users_command == "create":
        _print_user(
            services.users.create_user(
                name=args.name, email=args.email, role=UserRole(args.role), actor=actor
            )
        )
    elif args.users_command == "update":
        current = services.users.get_user(args.user_id)
        updated = replace(
            current,
            name=args.name if args.name is not None else current.name,
            email=args.email if args.email is not None else current.email,
            role=UserRole(args.role) if args.role is not None else current.role,
        )
        _print_user(services.users.update_user(actor, updated))
    elif args.users_command == "set-role":
        _print_user(services.users.change_role(actor, args.user_id, UserRole(args.role)))
    elif args.users_command == "deactivate":
        _print_user(services.users.deactivate_user(actor, args.user_id))


def cmd_tasks(services: Services, args: argparse.Namespace) -> None:
    actor = _require_actor(services, args)
    tasks = services.tasks
    now = SystemClock().now_ms

    if args.tasks_command == "list":
        filters = TaskFilters(
            view=args.view,
            search=args.search,
            status=TaskStatus(args.status) if args.status else None,
            assigned_to=args.assignee,
            sort_by=args.sort,
            descending=args.desc,
        )
        for task in tasks.list_tasks(actor, filters):
            _print_task_row(task, now())
    elif args.tasks_command == "show":
        _print_task(tasks.get_task(actor, args.task_id), now())
    elif args.tasks_command == "create":
        task = tasks.create_task(
            actor,
            name=args.name,
            description=args.description,
            estimated_time=_estimate(args) or 0,
            assigned_to=args.assign,
            url_link=args.url,
        )
        _print_task(task, now())
    elif args.tasks_command == "start":
        _print_task_row(tasks.start_task(actor, args.task_id), now())
    elif args.tasks_command == "end":
        _print_task_row(tasks.end_task(actor, args.task_id), now())
    elif args.tasks_command == "approve":
        _print_task_row(tasks.approve_task(actor, args.task_id, args.note), now())
    elif args.tasks_command == "edit":
        changes = {}
        if args.name is not None:
            changes["name"] = args.name
        if args.description is not None:
            changes["description"] = args.description
        if args.url is not None:
            changes["url_link"] = args.url
        estimate = _estimate(args)
        if estimate is not None:
            changes["estimated_time"] = estimate
        _print_task(tasks.edit_task(actor, args.task_id, **changes), now())
    elif args.tasks_command == "note":
        _print_task(tasks.add_note(actor, args.task_id, args.text), now())
    elif args.tasks_command == "archive":
        archived = tasks.archive_tasks(actor, args.task_ids)
        for task in archived:
            _print_task_row(task, now())
        print(f"{len(archived)} task(s) archived.")
    elif args.tasks_command == "watch":
        _watch(tasks, actor, args.task_id, args.ticks)


def _watch(tasks: TaskService, viewer: UserEntity, task_id: str, ticks: int | None) -> None:
    count = 0
    try:
        while ticks is None or count < ticks:
            task = tasks.get_task(viewer, task_id)
            seconds = tasks.live_elapsed(viewer, task_id)
            print(f"\r{task.name}: {format_clock(seconds)} [{task.status.value}]", end="", flush=True)
            count += 1
            if task.status != TaskStatus.STARTED:
                break
            time.sleep(SETTINGS.live_refresh_seconds)
    except KeyboardInterrupt:
        pass
    print()


def cmd_report(services: Services, args: argparse.Namespace) -> None:
    actor = _require_actor(services, args)
    report = services.reports.build_report(actor, assignee=args.assignee, date_range=args.range)
    print(f"Total tasks:          {report.total_tasks}")
    print(f"Completed:            {report.completed_tasks}")
    print(f"Avg completion time:  {format_duration(report.avg_completion_seconds)}")
    print(f"On-time completion:   {report.on_time_percentage:.0f}%")
    print("Status breakdown:")
    for status, count in report.status_breakdown.items():
        print(f"  {status.value:<10} {count}")
    print("Time on completed tasks:")
    for name, seconds in report.user_performance:
        print(f"  {name:<24} {format_duration(seconds, verbose=True)}")
    print("Completed per day:")
    for day, count in report.completion_trend:
        print(f"  {day.strftime('%a %Y-%m-%d')}  {count}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskledger", description="Task lifecycle and time tracking.")
    parser.add_argument("--as", dest="actor", metavar="EMAIL", help="acting user")
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-db", help="create the schema and seed an administrator")
    init.add_argument("--admin-email")
    init.add_argument("--admin-name")
    init.set_defaults(handler=cmd_init_db)

    users = sub.add_parser("users", help="manage the user directory")
    users.set_defaults(handler=cmd_users)
    users_sub = users.add_subparsers(dest="users_command", required=True)
    users_sub.add_parser("list")
    create_user = users_sub.add_parser("create")
    create_user.add_argument("name")
    create_user.add_argument("email")
    create_user.add_argument("--role", choices=[r.value for r in UserRole], default=UserRole.USER.value)
    update_user = users_sub.add_parser("update")
    update_user.add_argument("user_id")
    update_user.add_argument("--name")
    update_user.add_argument("--email")
    update_user.add_argument("--role", choices=[r.value for r in UserRole])
    set_role = users_sub.add_parser("set-role")
    set_role.add_argument("user_id")
    set_role.add_argument("role", choices=[r.value for r in UserRole])
    deactivate = users_sub.add_parser("deactivate")
    deactivate.add_argument("user_id")

    tasks = sub.add_parser("tasks", help="work with tasks")
    tasks.set_defaults(handler=cmd_tasks)
    tasks_sub = tasks.add_subparsers(dest="tasks_command", required=True)
    list_tasks = tasks_sub.add_parser("list")
    list_tasks.add_argument("--view", choices=VIEWS, default="active")
    list_tasks.add_argument("--search")
    list_tasks.add_argument("--status", choices=[s.value for s in TaskStatus])
    list_tasks.add_argument("--assignee")
    list_tasks.add_argument("--sort", choices=SORT_KEYS, default="created_at")
    list_tasks.add_argument("--desc", action="store_true")
    for name in ("show", "start", "end"):
        tasks_sub.add_parser(name).add_argument("task_id")
    create_task = tasks_sub.add_parser("create")
    create_task.add_argument("--name", required=True)
    create_task.add_argument("--description", default="")
    create_task.add_argument("--hours", type=int)
    create_task.add_argument("--minutes", type=int)
    create_task.add_argument("--assign", required=True, metavar="EMAIL")
    create_task.add_argument("--url")
    approve = tasks_sub.add_parser("approve")
    approve.add_argument("task_id")
    approve.add_argument("--note")
    edit = tasks_sub.add_parser("edit")
    edit.add_argument("task_id")
    edit.add_argument("--name")
    edit.add_argument("--description")
    edit.add_argument("--hours", type=int)
    edit.add_argument("--minutes", type=int)
    edit.add_argument("--url")
    note = tasks_sub.add_parser("note")
    note.add_argument("task_id")
    note.add_argument("text")
    archive = tasks_sub.add_parser("archive")
    archive.add_argument("task_ids", nargs="+")
    watch = tasks_sub.add_parser("watch")
    watch.add_argument("task_id")
    watch.add_argument("--ticks", type=int)

    report = sub.add_parser("report", help="summary figures")
    report.add_argument("--assignee", default="all")
    report.add_argument("--range", choices=DATE_RANGES, default="all")
    report.set_defaults(handler=cmd_report)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    try:
        init_db()
    except Exception as exc:  # noqa: BLE001
        logger.error("Database is not reachable: %s", exc)
        print(f"DB error: {exc}", file=sys.stderr)
        return 1

    services = build_services()
    try:
        args.handler(services, args)
    except TaskLedgerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
