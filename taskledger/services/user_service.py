from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from taskledger.domain import directory
from taskledger.domain.clock import Clock, SystemClock
from taskledger.domain.entities import UserEntity
from taskledger.domain.enums import UserRole
from taskledger.domain.errors import InvalidArgumentError, NotFoundError, TaskLedgerError
from taskledger.domain.permissions import can_manage_users, require
from taskledger.infra.repository import UserRepository

from .locking import WRITE_LOCK

logger = logging.getLogger(__name__)


class UserService:
    """Directory operations.

    Every write runs under ``WRITE_LOCK`` and re-reads the full user list, so
    the last-administrator checks always see a consistent snapshot.
    """

    def __init__(self, repo: UserRepository, clock: Clock | None = None) -> None:
        self._repo = repo
        self._clock = clock or SystemClock()

    def list_users(self) -> list[UserEntity]:
        return self._repo.list_users()

    def get_user(self, user_id: str) -> UserEntity:
        user = self._repo.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found.")
        return user

    def create_user(
        self,
        *,
        name: str,
        email: str,
        role: UserRole = UserRole.USER,
        actor: Optional[UserEntity] = None,
    ) -> UserEntity:
        """Create an active user. ``actor=None`` means the system itself (bootstrap)."""
        if actor is not None:
            require(can_manage_users(actor), "Only administrators can create users.")
        creator = actor.email if actor else None

        with WRITE_LOCK:
            user = directory.build_user(name, email, role, creator, self._clock.now_ms())
            directory.ensure_unique_email(self._repo.list_users(), user.email)
            created = self._repo.create_user(user)
        logger.info("User %s (%s) created by %s", created.email, created.role.value, creator or "system")
        return created

    def bootstrap_admin(self, email: str, name: str = "Admin") -> Optional[UserEntity]:
        """Seed the first administrator; does nothing once the directory has users."""
        with WRITE_LOCK:
            if self._repo.list_users():
                return None
            return self.create_user(name=name, email=email, role=UserRole.ADMIN)

    def update_user(self, actor: UserEntity, user: UserEntity) -> UserEntity:
        """Apply name, email and role from ``user``; other fields are ignored.

        An email change is cascaded into every task in the same transaction.
        """
        require(can_manage_users(actor), "Only administrators can update users.")
        with WRITE_LOCK:
            users = self._repo.list_users()
            current = self._find(users, user.id)
            email = directory.clean_email(user.email)
            name = directory.clean_name(user.name)
            role = UserRole(user.role)

            directory.ensure_unique_email(users, email, exclude_id=current.id)
            if role != current.role:
                self._guard(lambda: directory.check_role_change(current, role, users), current)

            updated = replace(
                current,
                name=name,
                email=email,
                role=role,
                updated_at=self._clock.now_ms(),
                updated_by=actor.email,
            )
            previous_email = current.email if email != current.email else None
            saved = self._repo.update_user(updated, previous_email=previous_email)
        if saved is None:
            raise NotFoundError(f"User {user.id} not found.")
        if previous_email:
            logger.info("User %s email changed %s -> %s by %s", saved.id, previous_email, saved.email, actor.email)
        else:
            logger.info("User %s updated by %s", saved.email, actor.email)
        return saved

    def change_role(self, actor: UserEntity, user_id: str, role: UserRole) -> UserEntity:
        return self.update_user(actor, replace(self.get_user(user_id), role=UserRole(role)))

    def change_email(self, actor: UserEntity, user_id: str, email: str) -> UserEntity:
        return self.update_user(actor, replace(self.get_user(user_id), email=email))

    def deactivate_user(self, actor: UserEntity, user_id: str) -> UserEntity:
        with WRITE_LOCK:
            users = self._repo.list_users()
            target = self._find(users, user_id)
            # Directory invariants are reported before the caller's own permission.
            self._guard(lambda: directory.check_deactivation(actor, target, users), target)
            require(can_manage_users(actor), "Only administrators can deactivate users.")
            if not target.is_active:
                raise InvalidArgumentError(f"User {target.email} is already deactivated.")

            deactivated = directory.deactivate(target, actor.email, self._clock.now_ms())
            saved = self._repo.update_user(deactivated)
        if saved is None:
            raise NotFoundError(f"User {user_id} not found.")
        logger.info("User %s deactivated by %s", saved.email, actor.email)
        return saved

    @staticmethod
    def _find(users: list[UserEntity], user_id: str) -> UserEntity:
        user = next((u for u in users if u.id == user_id), None)
        if user is None:
            raise NotFoundError(f"User {user_id} not found.")
        return user

    @staticmethod
    def _guard(check, target: UserEntity) -> None:
        try:
            check()
        except TaskLedgerError as exc:
            logger.warning("Rejected directory change for %s: %s", target.email, exc)
            raise
