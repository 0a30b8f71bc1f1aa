from __future__ import annotations

import os
import tempfile

# Point the settings at throwaway paths before anything imports taskledger.config.
_TMP_DIR = tempfile.mkdtemp(prefix="taskledger-tests-")
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/taskledger.sqlite3"
os.environ["LOG_DIR"] = _TMP_DIR

import pytest  # noqa: E402

from fakes import FakeTaskRepo, FakeUserRepo, ManualClock, RecordingNotifier  # noqa: E402
from taskledger.domain.entities import UserEntity  # noqa: E402
from taskledger.domain.enums import UserRole  # noqa: E402
from taskledger.services.task_service import TaskService  # noqa: E402
from taskledger.services.user_service import UserService  # noqa: E402


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def task_repo() -> FakeTaskRepo:
    return FakeTaskRepo()


@pytest.fixture()
def user_repo(task_repo: FakeTaskRepo) -> FakeUserRepo:
    return FakeUserRepo(task_repo)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def user_service(user_repo: FakeUserRepo, clock: ManualClock) -> UserService:
    return UserService(user_repo, clock)


@pytest.fixture()
def task_service(
    task_repo: FakeTaskRepo, user_repo: FakeUserRepo, clock: ManualClock, notifier: RecordingNotifier
) -> TaskService:
    return TaskService(task_repo, user_repo, clock, notifier, archive_appends_log=True)


@pytest.fixture()
def admin(user_service: UserService) -> UserEntity:
    return user_service.create_user(name="Admin", email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture()
def alice(user_service: UserService, admin: UserEntity) -> UserEntity:
    return user_service.create_user(name="Alice", email="a@x.com", actor=admin)


@pytest.fixture()
def bob(user_service: UserService, admin: UserEntity) -> UserEntity:
    return user_service.create_user(name="Bob", email="bob@x.com", actor=admin)


@pytest.fixture()
def make_task(task_service: TaskService, admin: UserEntity):
    def _make(assigned_to: str, name: str = "Design landing page", estimated_time: int = 3600):
        return task_service.create_task(
            admin,
            name=name,
            description="Mockups in Figma.",
            estimated_time=estimated_time,
            assigned_to=assigned_to,
        )

    return _make


@pytest.fixture()
def sqlite_db():
    from taskledger.infra import models  # noqa: F401
    from taskledger.infra.db import Base, engine

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
