import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool
import os
from datetime import datetime, timedelta, timezone
from typing import Generator, Any, Callable

# Переменные окружения до импорта settings и приложения
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "testsecretkey"

# Все модели регистрируются в Base.metadata через teamspace/models/__init__.py
import teamspace.models  # noqa: F401
from teamspace.models.base import Base
from teamspace.core.settings import settings as app_settings
from teamspace.database import enable_sqlite_savepoints
from teamspace.main import app
from teamspace.dependencies import get_db
from teamspace.crud.user import create_user
from teamspace.crud.team import create_company, get_company
from teamspace.crud.project import create_project
from teamspace.crud.task import create_task
from teamspace.core import security

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_savepoints(engine)


@pytest.fixture(scope="session", autouse=True)
def create_test_tables_session_scope():
    """
    Создаёт таблицы один раз на сессию тестов.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Сессия на тест: внешняя транзакция откатывается после теста,
    commit() внутри crud превращается в RELEASE SAVEPOINT.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        join_transaction_mode="create_savepoint",
        autoflush=False,
        expire_on_commit=False,
    )

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """
    TestClient с подменённой зависимостью get_db.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    del app.dependency_overrides[get_db]


def _make_user(db: Session, username: str, name: str, **extra) -> Any:
    return create_user(db, {
        "username": username,
        "email": f"{username}@example.com",
        "password": "testpassword",
        "name": name,
        **extra,
    })


@pytest.fixture(scope="function")
def test_user(db: Session) -> Any:
    """
    Обычный пользователь, создатель компании Acme.
    """
    user = _make_user(db, "testuser", "alice")
    create_company(db, {"name": "Acme"}, user)
    return user


@pytest.fixture(scope="function")
def company(db: Session, test_user: Any) -> Any:
    return get_company(db, test_user.company_id)


@pytest.fixture(scope="function")
def teammate(db: Session, test_user: Any) -> Any:
    """
    Второй пользователь той же компании.
    """
    return _make_user(db, "teammate", "bob", company_id=test_user.company_id)


@pytest.fixture(scope="function")
def outsider(db: Session) -> Any:
    """
    Пользователь из другой компании.
    """
    user = _make_user(db, "outsider", "mallory")
    create_company(db, {"name": "Globex"}, user)
    return user


@pytest.fixture(scope="function")
def test_superuser(db: Session) -> Any:
    return _make_user(db, "testadmin", "admin", is_superuser=True)


@pytest.fixture(scope="function")
def project(db: Session, test_user: Any) -> Any:
    return create_project(db, {
        "name": "Launch",
        "start_date": datetime.now(timezone.utc),
    }, test_user)


@pytest.fixture(scope="function")
def make_task(db: Session, project: Any, test_user: Any) -> Callable[..., Any]:
    """
    Фабрика задач: make_task(labels=["a", "b"], status="todo", ...).
    """
    def _make(labels=("one",), **fields):
        data = {
            "project_id": project.id,
            "name": fields.pop("name", "Task"),
            "subtasks": [{"label": label} for label in labels],
            **fields,
        }
        return create_task(db, data, test_user)
    return _make


def _token_headers(user: Any) -> dict[str, str]:
    token, _ = security.create_access_token(
        data={"sub": user.username},
        expires_delta=timedelta(minutes=app_settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def normal_user_token_headers(test_user: Any) -> dict[str, str]:
    return _token_headers(test_user)


@pytest.fixture(scope="function")
def teammate_token_headers(teammate: Any) -> dict[str, str]:
    return _token_headers(teammate)


@pytest.fixture(scope="function")
def outsider_token_headers(outsider: Any) -> dict[str, str]:
    return _token_headers(outsider)
