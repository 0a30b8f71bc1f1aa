from __future__ import annotations

import logging
from typing import Optional

from taskledger.domain.entities import UserEntity
from taskledger.domain.errors import DeactivatedUserError, NotFoundError
from taskledger.infra.repository import UserRepository

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, repo: UserRepository) -> None:
        self._repo = repo

    def login(self, email: str) -> UserEntity:
        user = self._repo.get_user_by_email(email)
        if user is None:
            logger.warning("Login failed for %s: unknown user", email)
            raise NotFoundError("User not found.")
        if not user.is_active:
            logger.warning("Login refused for %s: account deactivated", email)
            raise DeactivatedUserError("This account has been deactivated.")
        return user

    def resolve(self, user_id: str) -> Optional[UserEntity]:
        return self._repo.get_user(user_id)


class Session:
    """Explicit per-caller session; holds the acting user's id, never a global."""

    def __init__(self, auth: AuthService) -> None:
        self._auth = auth
        self._user_id: str | None = None

    def login(self, email: str) -> UserEntity:
        user = self._auth.login(email)
        self._user_id = user.id
        logger.info("User %s logged in", user.email)
        return user

    def logout(self) -> None:
        self._user_id = None

    @property
    def current_user(self) -> Optional[UserEntity]:
        # Re-read so email and role changes made since login are picked up.
        if self._user_id is None:
            return None
        user = self._auth.resolve(self._user_id)
        if user is None or not user.is_active:
            self._user_id = None
            return None
        return user
