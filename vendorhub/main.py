import logging
import sqlite3
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import vendorhub.models  # noqa: F401  registers every mapper before first query
from vendorhub.config import settings
from vendorhub.database import init_db
from vendorhub.errors import VendorHubError
from vendorhub.routers import activity, notifications, reports, setup, submissions, users
from vendorhub.utils.filesystem import ensure_data_dirs

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("vendorhub")

VERSION = "0.3.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create/migrate the database, then integrity-check it
    ensure_data_dirs()
    init_db()
    try:
        conn = sqlite3.connect(str(settings.db_path))
        result = conn.execute("PRAGMA integrity_check").fetchone()
        conn.close()
        if result and result[0] == "ok":
            logger.info("Database integrity check passed.")
        else:
            logger.error("DATABASE INTEGRITY CHECK FAILED: %s", result)
    except sqlite3.Error as exc:
        logger.error("Could not run startup integrity check: %s", exc)
    yield


app = FastAPI(
    title="VendorHub",
    description="Vendor document compliance: submissions, reviews and reporting",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _envelope(status_code: int, message: str, error: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "error": error},
    )


@app.exception_handler(VendorHubError)
async def vendorhub_error_handler(request: Request, exc: VendorHubError):
    return _envelope(exc.status_code, exc.message, type(exc).__name__)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _envelope(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg')}" if field else "Invalid request"
    return _envelope(422, message, "RequestValidationError")


app.include_router(setup.router, prefix=settings.api_prefix)
app.include_router(users.router, prefix=settings.api_prefix)
app.include_router(submissions.router, prefix=settings.api_prefix)
app.include_router(reports.router, prefix=settings.api_prefix)
app.include_router(notifications.router, prefix=settings.api_prefix)
app.include_router(activity.router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {"status": "ok", "version": VERSION}
