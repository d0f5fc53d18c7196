import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from vendorhub.config import settings
from vendorhub.database import get_db, init_db
from vendorhub.main import app
from vendorhub.models.user import User
from vendorhub.services.notification_service import dispatcher
from vendorhub.utils.dates import utc_now
from vendorhub.utils.security import hash_password


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
def tmp_data(tmp_path):
    data_path = tmp_path / "VendorHub"
    data_path.mkdir()
    original = settings.data_path
    settings.data_path = data_path
    yield data_path
    settings.data_path = original


@pytest.fixture
def test_db(tmp_data):
    db_path = tmp_data / "db.sqlite"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    TestSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    init_db(db_path)

    def override_get_db():
        db = TestSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestSession
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def db(test_db):
    session = test_db()
    yield session
    session.close()


@pytest.fixture
def client(test_db):
    return TestClient(app)


@pytest.fixture
def delivered():
    """Capture every event handed to the notification transports."""
    events = []
    dispatcher.add_transport(events.append)
    yield events
    dispatcher.remove_transport(events.append)


def make_user(db, role: str, name: str | None = None, consultant: User | None = None, **extra) -> User:
    now = utc_now()
    fields = {
        "id": str(uuid.uuid4()),
        "name": name or f"Test {role.title()}",
        "email": f"{uuid.uuid4().hex[:8]}@example.com",
        "role": role,
        "password_hash": hash_password("password123"),
        "is_active": True,
        "requires_login_approval": False,
        "assigned_consultant_id": consultant.id if consultant else None,
        "created_at": now,
        "updated_at": now,
    }
    fields.update(extra)
    user = User(**fields)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def people(db):
    admin = make_user(db, "admin", "Ada Admin")
    consultant = make_user(db, "consultant", "Cora Consultant")
    vendor = make_user(db, "vendor", "Vic Vendor", consultant=consultant, company="Acme Ltd")
    return {"admin": admin, "consultant": consultant, "vendor": vendor}


def auth(user_or_id) -> dict:
    user_id = user_or_id if isinstance(user_or_id, str) else user_or_id.id
    return {"X-User-Id": user_id}
