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


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./campus_fixit.db")

SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
# Service-role key bypasses row-level security; backend use only.
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
SUPABASE_STORAGE_BUCKET = os.getenv("SUPABASE_STORAGE_BUCKET", "campus-fixit-uploads")

SIGNED_URL_TTL_SECONDS = 3600
MAX_UPLOAD_BYTES = _get_int(os.getenv("MAX_UPLOAD_BYTES"), 5 * 1024 * 1024)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = _get_int(os.getenv("JWT_EXPIRES_MINUTES"), 7 * 24 * 60)

BCRYPT_ROUNDS = _get_int(os.getenv("BCRYPT_ROUNDS"), 10)

RATE_LIMIT_ENABLED = _get_bool(os.getenv("RATE_LIMIT_ENABLED"), default=True)
RATE_LIMIT_WINDOW_SECONDS = _get_int(os.getenv("RATE_LIMIT_WINDOW_SECONDS"), 15 * 60)
RATE_LIMIT_MAX_REQUESTS = _get_int(os.getenv("RATE_LIMIT_MAX_REQUESTS"), 100)

CLIENT_URL = os.getenv("CLIENT_URL", "*")

ADMIN_NAME = os.getenv("ADMIN_NAME", "Campus Admin")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")


def cors_origins() -> list[str]:
    return [origin.strip() for origin in CLIENT_URL.split(",") if origin.strip()] or ["*"]


def storage_configured() -> bool:
    return bool(SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY)


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
