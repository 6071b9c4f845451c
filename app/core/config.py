from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "AI Study Assistant"
    debug: bool = False
    environment: str = "development"  # development, production
    log_level: str = ""  # DEBUG, INFO, WARNING, ERROR, CRITICAL (empty = auto based on environment)
    log_to_file: bool = True  # Enable file logging

    # Database (SQLite for local dev, PostgreSQL for production)
    database_url: str = "sqlite:///./study_assistant.db"

    # Anthropic Claude
    anthropic_api_key: str = ""
    claude_model: str = "claude-sonnet-4-5-20250929"
    generation_temperature: float = 0.7
    generation_max_tokens: int = 3000

    # Quota
    default_monthly_limit: int = 5
    quota_window_days: int = 30

    # Uploads
    upload_dir: str = "./uploads"
    max_upload_size_mb: int = 25
    min_extracted_chars: int = 50
    prompt_max_chars: int = 8000
    stale_upload_max_age_minutes: int = 60

    # Rate limiting
    rate_limit_enabled: bool = True
    upload_rate_limit: str = "10/minute"

    # Frontend
    frontend_url: str = "http://localhost:5173"

    # CORS (comma-separated origins, empty = local dev defaults)
    allowed_origins: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


settings = Settings()

# Production requires a generation key
if settings.environment == "production" and not settings.anthropic_api_key:
    raise RuntimeError(
        "ANTHROPIC_API_KEY is not set. "
        "Set it in the environment before starting the API in production."
    )
