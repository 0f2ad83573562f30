import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _list(name: str, default: str = "") -> list:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


def _database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    if not os.getenv("DB_HOST"):
        return "sqlite:///./qalam.db"
    return (
        f"postgresql://{os.getenv('DB_USER')}:{os.getenv('DB_PASS')}"
        f"@{os.getenv('DB_HOST')}:{os.getenv('DB_PORT', '5432')}/{os.getenv('DB_NAME')}"
    )


class Settings:
    APP_NAME = "Qalam Blog API"
    VERSION = "1.0.0"

    DATABASE_URL = _database_url()
    DB_POOL_SIZE = _int("DB_POOL_SIZE", 10)
    DB_MAX_OVERFLOW = _int("DB_MAX_OVERFLOW", 0)
    DB_POOL_TIMEOUT = _int("DB_POOL_TIMEOUT", 60)
    DB_CONNECT_RETRIES = _int("DB_CONNECT_RETRIES", 5)
    DB_CONNECT_BACKOFF = _float("DB_CONNECT_BACKOFF", 0.5)

    SECRET_KEY = os.getenv("JWT_SECRET") or os.getenv("SECRET_KEY", "supersecretkey")
    ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_HOURS = _int("ACCESS_TOKEN_EXPIRE_HOURS", 24)

    ALLOWED_ORIGINS = _list(
        "ALLOWED_ORIGINS",
        "https://qalam-blogs-app.vercel.app,http://localhost:3000",
    )
    # peers whose X-Forwarded-For header is believed
    TRUSTED_PROXIES = _list("TRUSTED_PROXIES")

    CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
    CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
    CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")

    UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
    UPLOAD_MAX_BYTES = _int("UPLOAD_MAX_BYTES", 10 * 1024 * 1024)
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")

    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    @property
    def cloudinary_enabled(self) -> bool:
        return bool(
            self.CLOUDINARY_CLOUD_NAME
            and self.CLOUDINARY_API_KEY
            and self.CLOUDINARY_API_SECRET
        )


settings = Settings()
