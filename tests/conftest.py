import os

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('BCRYPT_ROUNDS', '4')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from courses_api.auth.passwords import hash_password  # noqa: E402
from courses_api.database import Base, enable_sqlite_foreign_keys, get_db  # noqa: E402
from courses_api.models.course import Course  # noqa: E402
from courses_api.models.user import User  # noqa: E402


@pytest.fixture
def db_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine, tables=[User.__table__, Course.__table__])
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine, tables=[Course.__table__, User.__table__])
        engine.dispose()


@pytest.fixture
def course_db(db_engine):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_user(course_db):
    def _make_user(email_address: str = 'ada@lovelace.org', password: str = 'correct horse', **fields) -> User:
        user = User(
            first_name=fields.get('first_name', 'Ada'),
            last_name=fields.get('last_name', 'Lovelace'),
            email_address=email_address,
            password=hash_password(password),
        )
        course_db.add(user)
        course_db.commit()
        course_db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_course(course_db):
    def _make_course(owner: User, title: str = 'Build a Basic Bookcase', **fields) -> Course:
        course = Course(
            title=title,
            description=fields.get('description', 'High-end furniture projects are great to dream about.'),
            estimated_time=fields.get('estimated_time', '12 hours'),
            materials_needed=fields.get('materials_needed', '* 1/2 x 3/4 inch parting strip'),
            user_id=owner.id,
        )
        course_db.add(course)
        course_db.commit()
        course_db.refresh(course)
        return course

    return _make_course


@pytest.fixture
def client(db_engine):
    from courses_api.main import app

    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def override_get_db():
        db = testing_session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
