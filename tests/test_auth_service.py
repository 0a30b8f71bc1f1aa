from __future__ import annotations

import pytest

from taskledger.domain.errors import DeactivatedUserError, NotFoundError
from taskledger.services.auth_service import AuthService, Session


def test_login_is_case_insensitive(user_repo, alice) -> None:
    assert AuthService(user_repo).login("A@X.COM") == alice


def test_login_unknown_user(user_repo, admin) -> None:
    with pytest.raises(NotFoundError):
        AuthService(user_repo).login("ghost@x.com")


def test_login_deactivated_user(user_repo, user_service, admin, alice) -> None:
    user_service.deactivate_user(admin, alice.id)

    with pytest.raises(DeactivatedUserError):
        AuthService(user_repo).login(alice.email)


def test_session_follows_identity_changes(user_repo, user_service, admin, alice) -> None:
    session = Session(AuthService(user_repo))
    session.login(alice.email)

    user_service.change_email(admin, alice.id, "b@x.com")

    assert session.current_user.email == "b@x.com"


def test_session_drops_deactivated_user(user_repo, user_service, admin, alice) -> None:
    session = Session(AuthService(user_repo))
    session.login(alice.email)

    user_service.deactivate_user(admin, alice.id)

    assert session.current_user is None


def test_logout(user_repo, alice) -> None:
    session = Session(AuthService(user_repo))
    session.login(alice.email)

    session.logout()

    assert session.current_user is None
