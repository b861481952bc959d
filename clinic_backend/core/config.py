import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")

CANCELLATION_NOTICE_HOURS = _get_int(os.getenv("CANCELLATION_NOTICE_HOURS"), 24)
DEFAULT_SLOT_DURATION_MINUTES = _get_int(os.getenv("DEFAULT_SLOT_DURATION_MINUTES"), 30)
MIN_SLOT_DURATION_MINUTES = _get_int(os.getenv("MIN_SLOT_DURATION_MINUTES"), 15)
MAX_SLOT_DURATION_MINUTES = _get_int(os.getenv("MAX_SLOT_DURATION_MINUTES"), 120)
RESERVE_RETRY_ATTEMPTS = _get_int(os.getenv("RESERVE_RETRY_ATTEMPTS"), 1)
MAX_REASON_LENGTH = _get_int(os.getenv("MAX_REASON_LENGTH"), 500)
MAX_NOTES_LENGTH = _get_int(os.getenv("MAX_NOTES_LENGTH"), 1000)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = _get_int(os.getenv("JWT_EXPIRES_MINUTES"), 60)

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:3000"])


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if MIN_SLOT_DURATION_MINUTES > MAX_SLOT_DURATION_MINUTES:
        raise RuntimeError("MIN_SLOT_DURATION_MINUTES cannot exceed MAX_SLOT_DURATION_MINUTES.")
