"""
Pytest configuration and shared fixtures.

Every test gets its own in-memory SQLite database and its own progress
channel; the API client is wired to both through dependency overrides.
"""

from collections.abc import Generator
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from taskboard.database import build_engine, create_tables, get_db
from taskboard.dependencies import get_progress_channel
from taskboard.main import create_app
from taskboard.models import ChecklistItem, Subtask, Task, TaskStatus, User
from taskboard.progress import ProgressChannel


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def channel() -> ProgressChannel:
    return ProgressChannel()


@pytest.fixture
def user(db_session: Session) -> User:
    user = User(email="owner@agency.test", hashed_password="not-used")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def make_task(db_session: Session, user: User):
    """Create a task with ``subtasks``/``checklist`` given as lists of done flags."""

    def _make(
        status: TaskStatus = TaskStatus.IN_PROGRESS,
        progress: int = 0,
        subtasks: tuple = (),
        checklist: tuple = (),
        project_id: str = None,
        title: str = "Landing page",
    ) -> Task:
        task = Task(title=title, status=status, progress=progress, project_id=project_id, user_id=user.id)
        db_session.add(task)
        db_session.flush()
        for position, done in enumerate(subtasks):
            db_session.add(Subtask(task_id=task.id, title=f"subtask {position}", is_done=done, position=position))
        for position, done in enumerate(checklist):
            db_session.add(ChecklistItem(task_id=task.id, title=f"item {position}", is_done=done, position=position))
        db_session.commit()
        db_session.refresh(task)
        return task

    return _make


class FakeClock:
    """Deterministic clock for timer tests."""

    def __init__(self, start: datetime = datetime(2024, 3, 1, 9, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(session_factory, channel) -> Generator[TestClient, None, None]:
    app = create_app(init_db=False)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_progress_channel] = lambda: channel
    yield TestClient(app)
    app.dependency_overrides.clear()


def _signup(client: TestClient, email: str) -> dict:
    response = client.post("/api/auth/signup", json={"email": email, "password": "s3cret"})
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def auth_headers(client: TestClient) -> dict:
    return _signup(client, "pm@agency.test")


@pytest.fixture
def other_auth_headers(client: TestClient) -> dict:
    return _signup(client, "designer@agency.test")
