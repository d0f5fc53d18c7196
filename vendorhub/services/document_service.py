import hashlib
import logging
import os
from pathlib import Path

from vendorhub.config import settings
from vendorhub.errors import StorageError
from vendorhub.utils.filesystem import ensure_document_dir, sanitize_filename

logger = logging.getLogger(__name__)


def content_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def store_file(submission_id: str, document_id: str, filename: str, content: bytes) -> tuple[str, str, int]:
    """Store an uploaded file immutably. Returns (relative_path, file_hash, file_size)."""
    file_hash = content_hash(content)
    safe_name = sanitize_filename(filename)
    stored_name = f"{file_hash[:8]}_{safe_name}"

    try:
        doc_dir = ensure_document_dir(submission_id, document_id)
        file_path = doc_dir / stored_name
        if not file_path.exists():
            file_path.write_bytes(content)
            os.chmod(file_path, 0o444)
    except OSError as exc:
        logger.exception("Could not write upload for document %s", document_id)
        raise StorageError("Could not store uploaded file") from exc

    relative_path = f"submissions/{submission_id}/{document_id}/{stored_name}"
    return relative_path, file_hash, len(content)


def get_file_full_path(stored_path: str, data_path: Path | None = None) -> Path:
    return (data_path or settings.data_path) / stored_path


def hash_stored_file(file_path: Path) -> str:
    h = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def discard_file(stored_path: str):
    """Remove a stored file whose row was never committed."""
    try:
        get_file_full_path(stored_path).unlink(missing_ok=True)
    except OSError:
        logger.warning("Could not remove orphaned upload %s", stored_path)
