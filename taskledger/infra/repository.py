from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError

from taskledger.domain.entities import TaskEntity, TaskLogEntry, TaskNote, UserEntity
from taskledger.domain.enums import ARCHIVED_STATUSES, TaskStatus, UserRole
from taskledger.domain.errors import ConcurrentUpdateError, DuplicateEmailError, LastAdminError
from taskledger.domain.filters import SORT_KEYS, TaskFilters

from .db import SessionLocal
from .models import TaskLogModel, TaskModel, TaskNoteModel, UserModel

logger = logging.getLogger(__name__)

STATUS_DELETED = TaskStatus.DELETED.value
ROLE_ADMIN = UserRole.ADMIN.value
ARCHIVED_VALUES = [status.value for status in ARCHIVED_STATUSES]


def _task_to_entity(model: TaskModel) -> TaskEntity:
    return TaskEntity(
        id=model.id,
        name=model.name,
        description=model.description,
        estimated_time=model.estimated_time,
        elapsed_time=model.elapsed_time,
        status=TaskStatus(model.status),
        assigned_to=model.assigned_to,
        created_by=model.created_by,
        created_at=model.created_at,
        updated_at=model.updated_at,
        updated_by=model.updated_by,
        started_at=model.started_at,
        completed_at=model.completed_at,
        deleted_at=model.deleted_at,
        deleted_by=model.deleted_by,
        url_link=model.url_link,
        logs=tuple(
            TaskLogEntry(timestamp=log.timestamp, user=log.user_email, description=log.description)
            for log in model.logs
        ),
        notes=tuple(
            TaskNote(timestamp=note.timestamp, user=note.user_email, text=note.text)
            for note in model.notes
        ),
        version=model.version,
    )


def _user_to_entity(model: UserModel) -> UserEntity:
    return UserEntity(
        id=model.id,
        name=model.name,
        email=model.email,
        role=UserRole(model.role),
        is_active=model.is_active,
        created_at=model.created_at,
        updated_at=model.updated_at,
        created_by=model.created_by,
        updated_by=model.updated_by,
        deleted_at=model.deleted_at,
        deleted_by=model.deleted_by,
        version=model.version,
    )


def _write_task(model: TaskModel, task: TaskEntity) -> None:
    model.name = task.name
    model.description = task.description
    model.estimated_time = task.estimated_time
    model.elapsed_time = task.elapsed_time
    model.status = task.status.value
    model.assigned_to = task.assigned_to
    model.created_by = task.created_by
    model.created_at = task.created_at
    model.updated_at = task.updated_at
    model.updated_by = task.updated_by
    model.started_at = task.started_at
    model.completed_at = task.completed_at
    model.deleted_at = task.deleted_at
    model.deleted_by = task.deleted_by
    model.url_link = task.url_link

    # Ledger rows are append-only: stored entries are never touched here.
    stored_logs = len(model.logs)
    for position, log in enumerate(task.logs[stored_logs:], start=stored_logs):
        model.logs.append(
            TaskLogModel(
                position=position,
                timestamp=log.timestamp,
                user_email=log.user,
                description=log.description,
            )
        )
    stored_notes = len(model.notes)
    for position, note in enumerate(task.notes[stored_notes:], start=stored_notes):
        model.notes.append(
            TaskNoteModel(
                position=position,
                timestamp=note.timestamp,
                user_email=note.user,
                text=note.text,
            )
        )


def _write_user(model: UserModel, user: UserEntity) -> None:
    model.name = user.name
    model.email = user.email
    model.email_key = user.email.casefold()
    model.role = user.role.value
    model.is_active = user.is_active
    model.created_at = user.created_at
    model.updated_at = user.updated_at
    model.created_by = user.created_by
    model.updated_by = user.updated_by
    model.deleted_at = user.deleted_at
    model.deleted_by = user.deleted_by


def _apply_filters(stmt, filters: TaskFilters) -> object:
    if filters.view == "active":
        stmt = stmt.where(TaskModel.status != STATUS_DELETED)
    elif filters.view == "archive":
        stmt = stmt.where(TaskModel.status.in_(ARCHIVED_VALUES))

    if filters.status is not None:
        stmt = stmt.where(TaskModel.status == TaskStatus(filters.status).value)

    if filters.assigned_to is not None:
        stmt = stmt.where(TaskModel.assigned_to == filters.assigned_to)

    if filters.search:
        pattern = f"%{filters.search}%"
        stmt = stmt.where(
            or_(
                TaskModel.name.ilike(pattern),
                TaskModel.description.ilike(pattern),
            )
        )

    key = filters.sort_by if filters.sort_by in SORT_KEYS else "created_at"
    column = getattr(TaskModel, key)
    return stmt.order_by(column.desc() if filters.descending else column.asc(), TaskModel.id.asc())


def _check_version(model, expected: int, kind: str) -> None:
    if model.version != expected:
        raise ConcurrentUpdateError(
            f"{kind} {model.id} was changed by someone else; reload and try again."
        )


def _active_admins(stmt):
    return stmt.where(UserModel.role == ROLE_ADMIN, UserModel.is_active.is_(True))


class TaskRepository:
    def list_tasks(self, filters: TaskFilters | None = None) -> list[TaskEntity]:
        with SessionLocal() as session:
            stmt = _apply_filters(select(TaskModel), filters or TaskFilters(view="all"))
            return [_task_to_entity(task) for task in session.scalars(stmt)]

    def get_task(self, task_id: str) -> Optional[TaskEntity]:
        with SessionLocal() as session:
            task = session.get(TaskModel, task_id)
            return _task_to_entity(task) if task else None

    def create_task(self, task: TaskEntity) -> TaskEntity:
        with SessionLocal() as session:
            model = TaskModel(id=task.id, version=1)
            _write_task(model, task)
            session.add(model)
            session.commit()
            session.refresh(model)
            return _task_to_entity(model)

    def save_task(self, task: TaskEntity) -> Optional[TaskEntity]:
        saved = self.save_tasks([task])
        return saved[0] if saved else None

    def save_tasks(self, tasks: Iterable[TaskEntity]) -> list[TaskEntity]:
        """Write every task in one transaction; unknown ids abort the batch.

        Each task must still be at the version it was read at, otherwise the
        whole batch is rolled back with ``ConcurrentUpdateError``.
        """
        tasks = list(tasks)
        if not tasks:
            return []
        with SessionLocal() as session:
            models = []
            for task in tasks:
                model = session.get(TaskModel, task.id, with_for_update=True)
                if not model:
                    session.rollback()
                    return []
                try:
                    _check_version(model, task.version, "Task")
                except ConcurrentUpdateError:
                    session.rollback()
                    raise
                _write_task(model, task)
                model.version = task.version + 1
                models.append(model)
            session.commit()
            return [_task_to_entity(model) for model in models]


class UserRepository:
    def list_users(self) -> list[UserEntity]:
        with SessionLocal() as session:
            stmt = select(UserModel).order_by(UserModel.created_at.asc(), UserModel.email_key.asc())
            return [_user_to_entity(user) for user in session.scalars(stmt)]

    def get_user(self, user_id: str) -> Optional[UserEntity]:
        with SessionLocal() as session:
            user = session.get(UserModel, user_id)
            return _user_to_entity(user) if user else None

    def get_user_by_email(self, email: str) -> Optional[UserEntity]:
        with SessionLocal() as session:
            stmt = select(UserModel).where(UserModel.email_key == email.strip().casefold())
            user = session.scalars(stmt).first()
            return _user_to_entity(user) if user else None

    def create_user(self, user: UserEntity) -> UserEntity:
        with SessionLocal() as session:
            model = UserModel(id=user.id, version=1)
            _write_user(model, user)
            session.add(model)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateEmailError("A user with this email already exists.") from exc
            return _user_to_entity(model)

    def update_user(self, user: UserEntity, previous_email: str | None = None) -> Optional[UserEntity]:
        """Persist ``user``; when the email changed, cascade it in the same transaction.

        Active administrator rows are locked for the duration, and the write is
        refused when it would leave none.
        """
        with SessionLocal() as session:
            session.execute(_active_admins(select(UserModel.id)).with_for_update()).all()
            model = session.get(UserModel, user.id, with_for_update=True)
            if not model:
                return None
            try:
                _check_version(model, user.version, "User")
                was_active_admin = model.role == ROLE_ADMIN and model.is_active
                _write_user(model, user)
                model.version = user.version + 1
                session.flush()
                if was_active_admin:
                    remaining = session.scalar(
                        _active_admins(select(func.count()).select_from(UserModel))
                    )
                    if not remaining:
                        raise LastAdminError("The directory must keep an active administrator.")
                if previous_email is not None and previous_email != user.email:
                    self._cascade_email(session, previous_email, user.email)
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateEmailError("Another user with this email already exists.") from exc
            except (ConcurrentUpdateError, LastAdminError):
                session.rollback()
                raise
            session.refresh(model)
            return _user_to_entity(model)

    @staticmethod
    def _cascade_email(session, old_email: str, new_email: str) -> None:
        targets = [
            (TaskModel, TaskModel.assigned_to),
            (TaskModel, TaskModel.created_by),
            (TaskModel, TaskModel.updated_by),
            (TaskModel, TaskModel.deleted_by),
            (TaskLogModel, TaskLogModel.user_email),
            (TaskNoteModel, TaskNoteModel.user_email),
            (UserModel, UserModel.created_by),
            (UserModel, UserModel.updated_by),
            (UserModel, UserModel.deleted_by),
        ]
        rewritten = 0
        for model, column in targets:
            values = {column.key: new_email}
            if model in (TaskModel, UserModel):
                # Rows read before the cascade must not be saved back over it.
                values["version"] = model.version + 1
            result = session.execute(
                update(model)
                .where(column == old_email)
                .values(values)
                .execution_options(synchronize_session=False)
            )
            rewritten += result.rowcount or 0
        logger.info("Cascaded email change %s -> %s across %s rows", old_email, new_email, rewritten)
