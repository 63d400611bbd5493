import os

from dotenv import load_dotenv


load_dotenv()

SERVICE_NAME = 'trainer-booking'

SUPPORTED_STORAGE_TYPES = {'memory', 'sqlite3', 'postgres'}


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_float(value: str | None, default: float | None) -> float | None:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default

APP_ENV = os.getenv("APP_ENV", "development")
APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = int(os.getenv("APP_PORT", "8080"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "info")
LOG_SOURCE = _get_bool(os.getenv("LOG_SOURCE"), default=True)
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")

STORAGE_TYPE = os.getenv("STORAGE_TYPE", "memory").strip().lower()

DATABASE_URL = os.getenv("DATABASE_URL", "")
DB_FILE = os.getenv("DB_FILE", "")
DB_HOST = os.getenv("DB_HOST", "")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "")
DB_USER = os.getenv("DB_USER", "")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")

# Upper bound on how long a single persistence call may wait for locks.
REQUEST_TIMEOUT_SECONDS = _get_float(os.getenv("REQUEST_TIMEOUT_SECONDS"), default=5.0)

SERVICE_VERSION = os.getenv("SERVICE_VERSION", "unknown")
COMMIT_SHA = os.getenv("COMMIT_SHA", "unknown")
BUILD_TIME = os.getenv("BUILD_TIME", "unknown")


def get_database_url(storage_type: str | None = None) -> str:
    storage_type = storage_type or STORAGE_TYPE
    if DATABASE_URL:
        return DATABASE_URL

    if storage_type == 'sqlite3':
        return f'sqlite:///{DB_FILE}' if DB_FILE else ''

    if storage_type == 'postgres':
        if not (DB_HOST and DB_NAME and DB_USER):
            return ''
        return f'postgresql+psycopg2://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}'

    return ''


def validate_runtime_config() -> None:
    if STORAGE_TYPE not in SUPPORTED_STORAGE_TYPES:
        raise RuntimeError(f"Unsupported STORAGE_TYPE: {STORAGE_TYPE}")
    if STORAGE_TYPE != 'memory' and not get_database_url():
        raise RuntimeError(
            f"STORAGE_TYPE={STORAGE_TYPE} requires DATABASE_URL or the matching DB_* settings."
        )


def describe_config() -> str:
    lines = [
        'Configuration',
        f'  Environment: {APP_ENV}',
        f'  Host: {APP_HOST}',
        f'  Port: {APP_PORT}',
        f'  LogLevel: {LOG_LEVEL}',
        f'  LogSource: {LOG_SOURCE}',
        f'  LogFormat: {LOG_FORMAT}',
        f'  StorageType: {STORAGE_TYPE}',
        f'  DbFile: {DB_FILE}',
        f'  DB: host={DB_HOST} port={DB_PORT} name={DB_NAME} user={DB_USER} password=***',
        f'  RequestTimeoutSeconds: {REQUEST_TIMEOUT_SECONDS}',
    ]
    return '\n'.join(lines)
