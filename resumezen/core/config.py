import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./resumezen.db"
    TEST_DATABASE_URL: Optional[str] = None

    # Auth (JWT issued by the auth/session provider)
    AUTH_JWT_SECRET: Optional[str] = None
    AUTH_JWT_ALGORITHM: str = "HS256"
    ALLOW_HEADER_AUTH: bool = True  # X-User-Id fallback, ignored in production

    # Shared secret for internal callers of the credit endpoints (X-Internal-Key)
    INTERNAL_API_KEY: Optional[str] = None

    # Object storage (Cloudinary)
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None
    CLOUDINARY_FOLDER: str = "resumes"

    # OCR (OCR.space)
    OCR_SPACE_API_KEY: Optional[str] = None
    OCR_SPACE_URL: str = "https://api.ocr.space/parse/image"

    # AI providers
    OPENROUTER_API_KEY: Optional[str] = None
    OPENROUTER_URL: str = "https://openrouter.ai/api/v1/chat/completions"
    OPENROUTER_REFERER: str = "https://resumezen.com"
    GROQ_API_KEY: Optional[str] = None
    DEFAULT_AI_MODEL: str = "meta-llama/llama-4-maverick:free"

    # One attempt per external call, bounded by this timeout
    PROVIDER_TIMEOUT_SECONDS: float = 60.0

    # Upload ceilings (bytes): generic uploader and dashboard quick upload
    UPLOAD_MAX_BYTES: int = 5 * 1024 * 1024
    QUICK_UPLOAD_MAX_BYTES: int = 1024 * 1024

    # Resume detection threshold (0-100)
    RESUME_MIN_SCORE: int = 40

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = False
    RATE_LIMIT_PER_MINUTE_DEFAULT: int = 120
    RATE_LIMIT_BURST_DEFAULT: int = 30

    # Observability / Tracing
    OTEL_ENABLED: bool = False
    OTEL_EXPORTER: str = "console"  # console | memory

    # App URLs
    FRONTEND_URL: str = "http://localhost:5173"

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate provider configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("resumezen")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "AUTH_JWT_SECRET",
        "CLOUDINARY_CLOUD_NAME",
        "CLOUDINARY_API_KEY",
        "CLOUDINARY_API_SECRET",
        "OCR_SPACE_API_KEY",
        "OPENROUTER_API_KEY",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
