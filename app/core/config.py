import logging
from typing import List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Application Information
    app_name: str = Field(default="LMS Grading Service")
    app_description: str = Field(
        default="Quiz grading, attempt lifecycle and course progress tracking"
    )
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=True)
    production: bool = Field(default=False)

    # Database Configuration
    # database_url overrides the individual parts below when set
    database_url: Optional[str] = Field(default=None)
    db_host: str = Field(default="127.0.0.1")
    db_port: int = Field(default=5432)
    db_database: str = Field(default="lms")
    db_username: str = Field(default="lms")
    db_password: str = Field(default="lms")
    db_echo: bool = Field(default=False)

    # Security Settings
    cors_allowed_origins: List[str] = Field(default=["http://localhost:3000"])

    # JWT Configuration
    jwt_secret: str = Field(default="your-secret-key-change-in-production")
    jwt_algorithm: str = Field(default="HS256")
    jwt_user_expiration: int = Field(default=7)
    jwt_issuer: str = Field(default="LMS Grading Service")

    # Authorization
    authorization_default_role: str = Field(default="student")
    authoring_roles: List[str] = Field(default=["instructor", "admin"])

    # Redis
    redis_url: str = Field(default="redis://localhost:6379")

    # Rate limiting (shared store, never per-process memory in production)
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_storage_uri: Optional[str] = Field(default=None)
    rate_limit_default: str = Field(default="100/minute")
    rate_limit_submit: str = Field(default="20/minute")

    # Cache
    cache_enabled: bool = Field(default=True)
    leaderboard_cache_ttl: int = Field(default=60)

    # Quizzes
    quiz_time_grace_seconds: int = Field(default=30)
    quiz_pass_points: int = Field(default=50)

    # Certificates
    certificate_validity_days: Optional[int] = Field(default=None)

    # Logging
    log_level: str = Field(default="info")
    log_file: str = Field(default="logs/app.log")

    # Pagination
    default_page_size: int = Field(default=20)
    max_page_size: int = Field(default=100)

    # ============================
    # Generic comma-separated parser
    # ============================
    @staticmethod
    def _parse_csv(value, default):
        if isinstance(value, str):
            items = [x.strip() for x in value.split(",") if x.strip()]
            return items if items else default
        if isinstance(value, list):
            return value
        return default

    @field_validator("authoring_roles", mode="before")
    def validate_authoring_roles(cls, v):
        return cls._parse_csv(v, ["instructor", "admin"])

    @field_validator("cors_allowed_origins", mode="before")
    def validate_cors(cls, v):
        return cls._parse_csv(v, ["http://localhost:3000"])

    @property
    def sqlalchemy_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return "postgresql+psycopg2://{user}:{password}@{host}:{port}/{database}".format(
            user=self.db_username,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_database,
        )

    @property
    def limiter_storage_uri(self) -> str:
        return self.rate_limit_storage_uri or self.redis_url

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


def load_settings():
    try:
        settings = Settings()
        logger.debug("Settings loaded successfully")
        return settings
    except ValidationError as e:
        logger.error(f"Settings validation error: {e}")
        raise


settings = load_settings()
