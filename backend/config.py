from pydantic_settings import BaseSettings
from pathlib import Path


SUPPORTED_AI_PROVIDERS = {"anthropic"}


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"  # development | test | staging | production
    APP_NAME: str = "Horsimize API"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    DATABASE_URL: str = "sqlite:///data/horsimize.db"
    DATA_DIR: Path = Path("data")
    STATIC_DIR: Path = Path("static")
    CORS_ORIGINS: list[str] = ["*"]
    AI_PROVIDER: str = "anthropic"
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"
    ANTHROPIC_MAX_TOKENS: int = 2000
    ANTHROPIC_TIMEOUT_SECONDS: int = 120
    FEED_SPONSOR_BRAND: str = "Purina"
    DEFAULT_IMAGE_MEDIA_TYPE: str = "image/jpeg"
    MAX_IMAGE_BYTES: int = 10 * 1024 * 1024
    ANALYSIS_STRICT_SCHEMA: bool = False
    SCAN_FAIL_ON_PERSIST_ERROR: bool = True
    SCAN_HISTORY_LIMIT: int = 50
    SECURITY_HEADERS_ENABLED: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def is_production_like(self) -> bool:
        return (self.ENVIRONMENT or "").strip().lower() in {"production", "prod", "staging"}

    def validate_runtime_configuration(self) -> None:
        errors: list[str] = []
        if (self.AI_PROVIDER or "").strip().lower() not in SUPPORTED_AI_PROVIDERS:
            errors.append(f"AI_PROVIDER must be one of: {', '.join(sorted(SUPPORTED_AI_PROVIDERS))}")
        if self.MAX_IMAGE_BYTES <= 0:
            errors.append("MAX_IMAGE_BYTES must be positive")
        if self.is_production_like and not (self.ANTHROPIC_API_KEY or "").strip():
            errors.append("ANTHROPIC_API_KEY must be set in production-like environments")
        if errors:
            joined = "; ".join(errors)
            raise RuntimeError(f"Invalid configuration: {joined}")


settings = Settings()
settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
