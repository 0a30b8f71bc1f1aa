from __future__ import annotations

from dataclasses import replace

import pytest

from fakes import references
from taskledger.domain.enums import UserRole
from taskledger.domain.errors import (
    DuplicateEmailError,
    InvalidArgumentError,
    LastAdminError,
    NotFoundError,
    PermissionDeniedError,
    SelfDeactivationError,
)


def test_create_user_defaults(user_service, admin, clock) -> None:
    user = user_service.create_user(name="Jane", email="jane@x.com", actor=admin)

    assert user.is_active
    assert user.role == UserRole.USER
    assert user.created_by == user.updated_by == admin.email
    assert user.created_at == user.updated_at == clock.now


def test_bootstrap_user_has_no_creator(admin) -> None:
    assert admin.created_by is None
    assert admin.is_admin


def test_duplicate_email_is_case_insensitive(user_service, admin, alice) -> None:
    with pytest.raises(DuplicateEmailError):
        user_service.create_user(name="Other", email="A@X.com", actor=admin)


def test_non_admin_cannot_manage_users(user_service, alice, bob) -> None:
    with pytest.raises(PermissionDeniedError):
        user_service.create_user(name="Eve", email="eve@x.com", actor=alice)
    with pytest.raises(PermissionDeniedError):
        user_service.deactivate_user(alice, bob.id)


def test_deactivating_sole_admin_fails(user_service, user_repo, admin, alice) -> None:
    with pytest.raises(LastAdminError):
        user_service.deactivate_user(alice, admin.id)

    assert user_repo.get_user(admin.id).is_active


def test_deactivating_second_admin_succeeds(user_service, admin, clock) -> None:
    second = user_service.create_user(
        name="Sandy", email="sandy@x.com", role=UserRole.ADMIN, actor=admin
    )
    clock.advance(1)

    gone = user_service.deactivate_user(admin, second.id)

    assert not gone.is_active
    assert gone.deleted_by == admin.email
    assert gone.deleted_at == clock.now


def test_self_deactivation_fails(user_service, admin) -> None:
    user_service.create_user(name="Sandy", email="sandy@x.com", role=UserRole.ADMIN, actor=admin)

    with pytest.raises(SelfDeactivationError):
        user_service.deactivate_user(admin, admin.id)


def test_deactivate_unknown_or_inactive(user_service, admin, alice) -> None:
    with pytest.raises(NotFoundError):
        user_service.deactivate_user(admin, "missing")

    user_service.deactivate_user(admin, alice.id)
    with pytest.raises(InvalidArgumentError):
        user_service.deactivate_user(admin, alice.id)


def test_demoting_last_admin_fails_and_changes_nothing(user_service, user_repo, admin) -> None:
    with pytest.raises(LastAdminError):
        user_service.change_role(admin, admin.id, UserRole.USER)

    assert user_repo.get_user(admin.id).role == UserRole.ADMIN


def test_demoting_with_an_inactive_admin_left_fails(user_service, admin, alice) -> None:
    second = user_service.change_role(admin, alice.id, UserRole.ADMIN)
    user_service.deactivate_user(admin, second.id)

    with pytest.raises(LastAdminError):
        user_service.change_role(admin, admin.id, UserRole.USER)


def test_email_change_cascades_into_tasks(
    user_service, task_service, task_repo, make_task, admin, alice, bob, clock
) -> None:
    mine = make_task(alice.email, name="Mine")
    theirs = make_task(bob.email, name="Theirs")
    task_service.start_task(alice, mine.id)
    task_service.add_note(alice, mine.id, "working")
    clock.advance(30)

    changed = user_service.change_email(admin, alice.id, "b@x.com")

    assert changed.email == "b@x.com"
    assert changed.updated_by == admin.email
    moved = task_repo.get_task(mine.id)
    assert moved.assigned_to == "b@x.com"
    assert [log.user for log in moved.logs] == [admin.email, "b@x.com", "b@x.com"]
    assert moved.notes[0].user == "b@x.com"
    assert not any(references(task, "a@x.com") for task in task_repo.tasks.values())
    assert task_repo.get_task(theirs.id) == theirs


def test_admin_renaming_own_email_updates_created_by(
    user_service, task_repo, make_task, admin, alice
) -> None:
    task = make_task(alice.email)

    updated = user_service.change_email(admin, admin.id, "boss@example.com")

    assert updated.updated_by == "boss@example.com"
    assert task_repo.get_task(task.id).created_by == "boss@example.com"
    assert user_service.get_user(alice.id).created_by == "boss@example.com"


def test_email_change_to_taken_address_fails(user_service, admin, alice, bob) -> None:
    with pytest.raises(DuplicateEmailError):
        user_service.change_email(admin, alice.id, "BOB@x.com")


def test_email_case_change_of_same_user_is_allowed(user_service, admin, alice) -> None:
    assert user_service.change_email(admin, alice.id, "A@x.com").email == "A@x.com"


def test_update_user_ignores_activation_fields(user_service, admin, alice) -> None:
    updated = user_service.update_user(admin, replace(alice, name="Alice K", is_active=False))

    assert updated.name == "Alice K"
    assert updated.is_active


def test_bootstrap_admin_only_on_empty_directory(user_service) -> None:
    first = user_service.bootstrap_admin("root@example.com")

    assert first is not None and first.is_admin
    assert user_service.bootstrap_admin("other@example.com") is None
