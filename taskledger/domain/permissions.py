from __future__ import annotations

from .entities import TaskEntity, UserEntity
from .errors import PermissionDeniedError


def can_view_task(user: UserEntity, task: TaskEntity) -> bool:
    return user.is_admin or task.assigned_to == user.email


def can_work_on(user: UserEntity, task: TaskEntity) -> bool:
    if not user.is_active:
        return False
    return user.is_admin or task.assigned_to == user.email


def can_approve(user: UserEntity, task: TaskEntity) -> bool:
    return user.is_active and user.is_admin


def can_create_task(user: UserEntity) -> bool:
    return user.is_active and user.is_admin


def can_manage_users(user: UserEntity) -> bool:
    return user.is_active and user.is_admin


def require(allowed: bool, message: str) -> None:
    if not allowed:
        raise PermissionDeniedError(message)
