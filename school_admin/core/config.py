import json
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Annotated, Optional, List, Dict, Any
from datetime import timedelta


class Settings(BaseSettings):
    # Application Settings
    APP_NAME: str = "School Administration API"
    VERSION: str = "1.0.0"
    DEBUG: bool = Field(default=False)

    # Database Settings
    DATABASE_URL: str = Field(...)
    DB_ECHO: bool = Field(default=False)
    DB_POOL_SIZE: int = Field(default=20)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=1800)

    # Authentication Settings
    SECRET_KEY: str = Field(...)
    ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30)
    TOKEN_ISSUER: str = Field(default="school_admin_api")

    # CORS Settings
    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000"
        ]
    )

    # Logging Settings
    LOG_LEVEL: str = Field(default="INFO")
    LOG_DIR: Optional[str] = Field(default=None)

    # Assignment defaults
    DEFAULT_MAX_CLASSES: int = Field(default=10, ge=1)
    MAX_CLASSES_LIMIT: int = Field(default=20, ge=1)
    DEFAULT_MAX_SUBJECTS: int = Field(default=8, ge=1)
    DEFAULT_WEEKLY_PERIODS: int = Field(default=5, ge=1)
    DEFAULT_MAX_WEEKLY_LESSONS: int = Field(default=40, ge=1)
    DEFAULT_MIN_WEEKLY_LESSONS: int = Field(default=20, ge=0)

    @field_validator('SECRET_KEY')
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Refuse short signing keys"""
        if len(v) < 16:
            raise ValueError("SECRET_KEY must be at least 16 characters long")
        return v

    @field_validator('ALLOWED_ORIGINS', mode='before')
    @classmethod
    def parse_allowed_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True
    )

# Initialize settings
settings = Settings()

# Helper Functions
def get_token_expires_delta(minutes: Optional[int] = None) -> timedelta:
    if minutes is None:
        minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES
    return timedelta(minutes=minutes)

def get_database_settings() -> Dict[str, Any]:
    """Engine keyword arguments for the configured database.

    SQLite drivers do not take queue-pool sizing options, so those are only
    passed for server databases.
    """
    options: Dict[str, Any] = {
        "echo": settings.DB_ECHO,
        "pool_pre_ping": True,
    }
    if not settings.is_sqlite:
        options.update({
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_timeout": settings.DB_POOL_TIMEOUT,
            "pool_recycle": settings.DB_POOL_RECYCLE,
        })
    return options

def get_jwt_settings() -> dict:
    return {
        "secret_key": settings.SECRET_KEY,
        "algorithm": settings.ALGORITHM,
        "access_token_expire_minutes": settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        "token_issuer": settings.TOKEN_ISSUER
    }

def get_logging_config() -> Dict[str, Optional[str]]:
    return {
        "log_level": settings.LOG_LEVEL,
        "log_dir": settings.LOG_DIR
    }

def get_assignment_defaults() -> Dict[str, int]:
    return {
        "max_classes": settings.DEFAULT_MAX_CLASSES,
        "max_classes_limit": settings.MAX_CLASSES_LIMIT,
        "max_subjects": settings.DEFAULT_MAX_SUBJECTS,
        "weekly_periods": settings.DEFAULT_WEEKLY_PERIODS,
        "max_weekly_lessons": settings.DEFAULT_MAX_WEEKLY_LESSONS,
        "min_weekly_lessons": settings.DEFAULT_MIN_WEEKLY_LESSONS
    }
