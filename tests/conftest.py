import os
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path

os.environ.setdefault("DB_DIR", tempfile.mkdtemp(prefix="lms-tests-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from lms_api.app import app
from lms_api.database import get_db, init_db, make_engine
from lms_api.models.db.course import Course
from lms_api.models.db.tryout import Tryout
from lms_api.models.db.user import User
from lms_api.models.tryouts import TryoutCreate
from lms_api.services import auth_service, course_service, tryout_service
from tests.factories import single_choice


@pytest.fixture
def session_factory(tmp_path: Path) -> Iterator[sessionmaker]:
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    def _make(username: str, is_admin: bool = False) -> User:
        return auth_service.create_user(
            db, username, f"{username}@example.com", "secret123", name=username.title(), is_admin=is_admin
        )

    return _make


@pytest.fixture
def admin(make_user) -> User:
    return make_user("admin", is_admin=True)


@pytest.fixture
def student(make_user) -> User:
    return make_user("student")


@pytest.fixture
def course(db: Session, student: User) -> Course:
    course = course_service.create_course(db, "Algorithms", "ALG-101")
    course_service.enroll(db, course.id, student)
    return course


@pytest.fixture
def make_tryout(db: Session, course: Course) -> Callable[..., Tryout]:
    def _make(*questions: dict, duration: int | None = None, is_active: bool = True) -> Tryout:
        payload = TryoutCreate(
            title="Midterm tryout",
            duration=duration,
            course_id=course.id,
            is_active=is_active,
            questions=list(questions) or [single_choice()],
        )
        return tryout_service.create_tryout(db, payload)

    return _make


@pytest.fixture
def api(session_factory: sessionmaker) -> Iterator[TestClient]:
    def _get_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(db: Session) -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {auth_service.issue_token(db, user.id)}"}

    return _headers
