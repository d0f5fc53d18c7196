import logging
import sqlite3
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from vendorhub.config import settings
from vendorhub.errors import ConflictError, StorageError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(db_path: Path | None = None):
    path = db_path or settings.db_path
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False, "timeout": settings.sqlite_timeout_seconds},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


engine = get_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit(db: Session) -> None:
    """Commit the unit of work, rolling back and translating failures."""
    try:
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        raise ConflictError("Record was modified concurrently; reload and retry") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Database commit failed")
        raise StorageError("Could not save changes") from exc


SCHEMA_SQL = """\
-- ============================================================
-- USERS
-- ============================================================
CREATE TABLE IF NOT EXISTS users (
    id                      TEXT PRIMARY KEY,
    name                    TEXT NOT NULL,
    email                   TEXT NOT NULL UNIQUE,
    role                    TEXT NOT NULL CHECK(role IN ('vendor','consultant','admin')),
    company                 TEXT,
    phone                   TEXT,
    address                 TEXT,
    password_hash           TEXT NOT NULL,
    is_active               INTEGER NOT NULL DEFAULT 1,
    requires_login_approval INTEGER NOT NULL DEFAULT 0,
    assigned_consultant_id  TEXT REFERENCES users(id) ON DELETE SET NULL,
    created_at              TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at              TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_users_role ON users(role);
CREATE INDEX IF NOT EXISTS idx_users_consultant ON users(assigned_consultant_id);

-- ============================================================
-- SUBMISSIONS
-- ============================================================
CREATE TABLE IF NOT EXISTS submissions (
    id         TEXT PRIMARY KEY,
    vendor_id  TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    period     TEXT NOT NULL,
    month      TEXT,
    year       INTEGER,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_submissions_vendor ON submissions(vendor_id);
CREATE UNIQUE INDEX IF NOT EXISTS idx_submissions_vendor_period ON submissions(vendor_id, period);

-- ============================================================
-- SUBMISSION DOCUMENTS
-- ============================================================
CREATE TABLE IF NOT EXISTS submission_documents (
    id            TEXT PRIMARY KEY,
    submission_id TEXT NOT NULL REFERENCES submissions(id) ON DELETE CASCADE,
    position      INTEGER NOT NULL,
    title         TEXT NOT NULL,
    document_type TEXT NOT NULL,
    status        TEXT NOT NULL DEFAULT 'pending',
    review_notes  TEXT,
    reviewer_id   TEXT REFERENCES users(id) ON DELETE SET NULL,
    review_date   TEXT,
    version       INTEGER NOT NULL DEFAULT 1,
    created_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_sub_documents_submission ON submission_documents(submission_id);
CREATE INDEX IF NOT EXISTS idx_sub_documents_status ON submission_documents(status);
CREATE INDEX IF NOT EXISTS idx_sub_documents_reviewer ON submission_documents(reviewer_id);

CREATE TABLE IF NOT EXISTS document_files (
    id                TEXT PRIMARY KEY,
    document_id       TEXT NOT NULL REFERENCES submission_documents(id) ON DELETE CASCADE,
    original_filename TEXT NOT NULL,
    stored_path       TEXT NOT NULL,
    file_hash         TEXT NOT NULL,
    file_size_bytes   INTEGER NOT NULL,
    mime_type         TEXT,
    uploaded_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    sequence          INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_document_files_document ON document_files(document_id);
CREATE UNIQUE INDEX IF NOT EXISTS idx_document_files_path ON document_files(stored_path);

CREATE TABLE IF NOT EXISTS document_remarks (
    id          TEXT PRIMARY KEY,
    document_id TEXT NOT NULL REFERENCES submission_documents(id) ON DELETE CASCADE,
    author_id   TEXT REFERENCES users(id) ON DELETE SET NULL,
    status      TEXT NOT NULL,
    text        TEXT NOT NULL,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    sequence    INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_document_remarks_document ON document_remarks(document_id);

-- ============================================================
-- NOTIFICATIONS
-- ============================================================
CREATE TABLE IF NOT EXISTS notifications (
    id                    TEXT PRIMARY KEY,
    recipient_id          TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    sender_id             TEXT REFERENCES users(id) ON DELETE SET NULL,
    type                  TEXT NOT NULL,
    title                 TEXT NOT NULL,
    message               TEXT NOT NULL,
    related_submission_id TEXT,
    related_document_id   TEXT,
    priority              TEXT NOT NULL DEFAULT 'medium'
                          CHECK(priority IN ('low','medium','high','urgent')),
    is_read               INTEGER NOT NULL DEFAULT 0,
    created_at            TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_notifications_recipient ON notifications(recipient_id, is_read);

-- ============================================================
-- SAVED REPORTS
-- ============================================================
CREATE TABLE IF NOT EXISTS reports (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    description TEXT,
    type        TEXT NOT NULL,
    parameters  TEXT NOT NULL DEFAULT '{}',
    filters     TEXT NOT NULL DEFAULT '{}',
    created_by  TEXT REFERENCES users(id) ON DELETE SET NULL,
    is_public   INTEGER NOT NULL DEFAULT 0,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_reports_type ON reports(type);

-- ============================================================
-- ACTIVITY LOG
-- ============================================================
CREATE TABLE IF NOT EXISTS activity_logs (
    id          TEXT PRIMARY KEY,
    actor_id    TEXT REFERENCES users(id) ON DELETE SET NULL,
    actor_role  TEXT,
    action      TEXT NOT NULL,
    entity_type TEXT,
    entity_id   TEXT,
    details     TEXT,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_activity_logs_action ON activity_logs(action);
CREATE INDEX IF NOT EXISTS idx_activity_logs_created ON activity_logs(created_at);
"""


MIGRATIONS = [
    # v0.2: optimistic concurrency counter on documents
    "ALTER TABLE submission_documents ADD COLUMN version INTEGER NOT NULL DEFAULT 1",
    # v0.3: vendor login approval flag
    "ALTER TABLE users ADD COLUMN requires_login_approval INTEGER NOT NULL DEFAULT 0",
    # v0.4: stable upload and remark order within a document
    "ALTER TABLE document_files ADD COLUMN sequence INTEGER NOT NULL DEFAULT 0",
    "ALTER TABLE document_remarks ADD COLUMN sequence INTEGER NOT NULL DEFAULT 0",
]


def init_db(db_path: Path | None = None):
    path = db_path or settings.db_path
    conn = sqlite3.connect(str(path))
    conn.executescript(SCHEMA_SQL)
    # Run migrations idempotently (ALTER TABLE fails if column exists)
    for migration in MIGRATIONS:
        try:
            conn.execute(migration)
            conn.commit()
        except sqlite3.OperationalError:
            pass  # column already exists
    conn.close()
