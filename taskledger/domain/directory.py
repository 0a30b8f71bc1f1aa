"""User directory rules.

The directory must always keep at least one active administrator. Both guards
below (deactivation and role change) count active administrators only.
"""
from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Iterable, Optional

from .entities import UserEntity
from .enums import UserRole
from .errors import (
    DuplicateEmailError,
    InvalidArgumentError,
    LastAdminError,
    SelfDeactivationError,
)


def new_user_id() -> str:
    return uuid.uuid4().hex


def clean_email(email: str) -> str:
    cleaned = (email or "").strip()
    local, _, domain = cleaned.partition("@")
    if not local or not domain or " " in cleaned:
        raise InvalidArgumentError(f"Invalid email address: {email!r}.")
    return cleaned


def clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidArgumentError("User name must not be empty.")
    return cleaned


def ensure_unique_email(
    users: Iterable[UserEntity], email: str, exclude_id: Optional[str] = None
) -> None:
    clash = next(
        (user for user in users if user.has_email(email) and user.id != exclude_id), None
    )
    if clash is None:
        return
    if exclude_id is None:
        raise DuplicateEmailError("A user with this email already exists.")
    raise DuplicateEmailError("Another user with this email already exists.")


def active_admins(users: Iterable[UserEntity]) -> list[UserEntity]:
    return [user for user in users if user.is_admin and user.is_active]


def _is_last_active_admin(target: UserEntity, users: Iterable[UserEntity]) -> bool:
    if not (target.is_admin and target.is_active):
        return False
    return all(user.id == target.id for user in active_admins(users))


def check_deactivation(actor: UserEntity, target: UserEntity, users: Iterable[UserEntity]) -> None:
    if actor.id == target.id:
        raise SelfDeactivationError("You can't deactivate your own account.")
    if _is_last_active_admin(target, users):
        raise LastAdminError("Cannot deactivate the last administrator.")


def check_role_change(target: UserEntity, new_role: UserRole, users: Iterable[UserEntity]) -> None:
    if new_role != UserRole.ADMIN and _is_last_active_admin(target, users):
        raise LastAdminError("Cannot remove the last administrator.")


def can_deactivate(actor: UserEntity, target: UserEntity, users: Iterable[UserEntity]) -> bool:
    try:
        check_deactivation(actor, target, list(users))
    except (SelfDeactivationError, LastAdminError):
        return False
    return True


def can_change_role(target: UserEntity, new_role: UserRole, users: Iterable[UserEntity]) -> bool:
    try:
        check_role_change(target, new_role, list(users))
    except LastAdminError:
        return False
    return True


def build_user(
    name: str,
    email: str,
    role: UserRole,
    creator: Optional[str],
    now: int,
    user_id: Optional[str] = None,
) -> UserEntity:
    return UserEntity(
        id=user_id or new_user_id(),
        name=clean_name(name),
        email=clean_email(email),
        role=UserRole(role),
        is_active=True,
        created_at=now,
        updated_at=now,
        created_by=creator,
        updated_by=creator,
    )


def deactivate(target: UserEntity, actor_email: str, now: int) -> UserEntity:
    return replace(
        target,
        is_active=False,
        deleted_at=now,
        deleted_by=actor_email,
        updated_at=now,
        updated_by=actor_email,
    )
