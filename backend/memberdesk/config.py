"""Application configuration."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # App
    APP_NAME: str = "MemberDesk_Admin"
    ENV: str = "development"
    DEBUG: bool = True
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:9002"
    LOG_LEVEL: str = "INFO"

    # Database (document store backing)
    DATABASE_URL: str = "sqlite:///./memberdesk.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Identity provider: "local" (SQL accounts) or "firebase"
    IDENTITY_BACKEND: str = "local"
    # Base64-encoded service account JSON for the Firebase Admin SDK.
    FIREBASE_ADMIN_SDK_CONFIG_BASE64: str | None = None

    # JWT (local identity backend only)
    JWT_SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 8 * 60

    # Redis (sign-in rate limiting)
    REDIS_URL: str = "redis://localhost:6379/0"
    # Only trust X-Forwarded-* headers when running behind a trusted reverse proxy.
    TRUST_PROXY_HEADERS: bool = False
    AUTH_SIGN_IN_IP_LIMIT_PER_MINUTE: int = 5

    # Association / members
    ASSOCIATION_NAME: str = "Mechanic Mitra Members Association"
    MEMBER_ID_PREFIX: str = "MM"
    MEMBER_ID_WIDTH: int = 3
    MEMBER_EMAIL_DOMAIN: str = "mechanicmitra.in"
    # Shared password for synthetic member accounts, members change it on first login.
    MEMBER_DEFAULT_PASSWORD: str = "mechanicmitra"
    MEMBER_PAGE_SIZE: int = 25

    # Certificates
    CERTIFICATE_ID_PREFIX: str = "CERT"
    CERTIFICATE_REMINDER_DAYS: int = 30

    # Print backgrounds, served by the console frontend
    CERTIFICATE_BACKGROUND_URL: str = "/certificate/certificate-background.png"
    ID_CARD_FRONT_URL: str = "/id/id-front.png"
    ID_CARD_BACK_URL: str = "/id/id-back.png"

    # Uploads (inlined into documents as data URIs)
    MAX_UPLOAD_SIZE: int = 2 * 1024 * 1024  # 2MB
    ALLOWED_UPLOAD_TYPES: str = "image/jpeg,image/png,image/webp,application/pdf"

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def allowed_upload_types_list(self) -> list[str]:
        """Get allowed upload content types as list."""
        return [t.strip().lower() for t in self.ALLOWED_UPLOAD_TYPES.split(",") if t.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
