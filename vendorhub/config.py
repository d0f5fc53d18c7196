from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_path: Path = Path.home() / "VendorHub"
    # Cap upload sizes to keep a single request from filling the disk.
    max_upload_bytes: int = 10 * 1024 * 1024  # 10 MiB
    # Bounds long-running aggregation queries waiting on a locked database.
    sqlite_timeout_seconds: float = 30.0
    api_prefix: str = "/api"
    cors_origins: list[str] = [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ]
    log_level: str = "INFO"
    # Document statuses that still need vendor attention for reminders.
    reminder_statuses: list[str] = ["pending", "under_review", "rejected"]
    host: str = "127.0.0.1"
    port: int = 8000

    @property
    def db_path(self) -> Path:
        return self.data_path / "db.sqlite"

    @property
    def uploads_dir(self) -> Path:
        return self.data_path / "submissions"

    model_config = {"env_prefix": "VENDORHUB_"}


settings = Settings()
