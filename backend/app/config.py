from functools import lru_cache
from pathlib import Path
from typing import Annotated, List

from pydantic import AliasChoices, AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Settings shared by the chat engine and the reference entity service."""

    app_name: str = Field(default="Huddle API", env="APP_NAME", description="Human readable service name")
    environment: str = Field(default="development", env="ENVIRONMENT", description="Deployment environment name")
    debug: bool = Field(default=False, env="DEBUG", description="Enable debug mode")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:3000",
            "http://127.0.0.1",
            "http://127.0.0.1:3000",
        ],
        env="CORS_ORIGINS",
        description="List of allowed CORS origins",
    )

    database_user: str = Field(default="huddle", env="DB_USER")
    database_password: str = Field(default="huddle", env="DB_PASSWORD")
    database_host: str = Field(default="db", env="DB_HOST")
    database_port: int = Field(default=3306, env="DB_PORT")
    database_name: str = Field(default="huddle", env="DB_NAME")
    database_url_override: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "database_url_override"),
        description="Full SQLAlchemy URL; takes precedence over the individual DB_* settings.",
    )
    database_auto_create: bool = Field(
        default=False,
        env="DATABASE_AUTO_CREATE",
        description="Create missing tables on startup.",
    )

    jwt_secret_key: str = Field(default="changeme", env="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", env="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, env="ACCESS_TOKEN_EXPIRE_MINUTES")

    entity_list_max_limit: int = Field(
        default=500,
        env="ENTITY_LIST_MAX_LIMIT",
        description="Upper bound on rows returned by a single filter request.",
    )
    media_root: Path = Field(default=Path("uploads"), env="MEDIA_ROOT")
    media_base_url: str = Field(default="/api/uploads", env="MEDIA_BASE_URL")
    max_upload_size: int = Field(
        default=10 * 1024 * 1024, env="MAX_UPLOAD_SIZE", description="Maximum upload size in bytes"
    )

    # Engine
    sync_poll_interval_seconds: float = Field(
        default=3.0,
        env="SYNC_POLL_INTERVAL_SECONDS",
        description="Delay between polls of the active conversation.",
    )
    sync_history_window: int = Field(
        default=100,
        env="SYNC_HISTORY_WINDOW",
        description="Newest channel messages fetched per poll.",
    )
    chat_message_max_length: int = Field(default=2000, env="CHAT_MESSAGE_MAX_LENGTH")
    entity_api_base_url: str = Field(
        default="http://localhost:8000/api",
        env="ENTITY_API_BASE_URL",
        description="Base URL of the entity service the engine talks to.",
    )
    entity_api_timeout_seconds: float = Field(default=10.0, env="ENTITY_API_TIMEOUT_SECONDS")
    assistant_url: str | None = Field(
        default=None,
        env="ASSISTANT_URL",
        description="Endpoint accepting {\"prompt\": ...} and returning the generated text.",
    )
    assistant_timeout_seconds: float = Field(default=30.0, env="ASSISTANT_TIMEOUT_SECONDS")

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+pymysql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):  # type: ignore[override]
        if v in (None, "", Ellipsis):
            return v
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, (list, tuple, set)):
            return list(v)
        return v

    @field_validator("media_root", mode="before")
    @classmethod
    def resolve_media_root(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value.resolve()
        return Path(value).resolve()


@lru_cache
def get_settings() -> Settings:
    return Settings()
