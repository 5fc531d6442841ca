from functools import lru_cache
from pathlib import Path
from typing import Annotated, List

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Team Chat API", env="APP_NAME", description="Human readable service name")
    environment: str = Field(default="development", env="ENVIRONMENT", description="Deployment environment name")
    debug: bool = Field(default=False, env="DEBUG", description="Enable debug mode")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1",
            "http://127.0.0.1:5173",
        ],
        env="CORS_ORIGINS",
        description="List of allowed CORS origins",
    )

    database_url_override: str | None = Field(
        default=None,
        validation_alias="DATABASE_URL",
        description="Full SQLAlchemy URL; takes precedence over the DB_* parts",
    )
    database_user: str = Field(default="teamchat", validation_alias="DB_USER")
    database_password: str = Field(default="teamchat", validation_alias="DB_PASSWORD")
    database_host: str = Field(default="db", validation_alias="DB_HOST")
    database_port: int = Field(default=3306, validation_alias="DB_PORT")
    database_name: str = Field(default="teamchat", validation_alias="DB_NAME")

    jwt_secret_key: str = Field(default="changeme", env="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", env="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, env="ACCESS_TOKEN_EXPIRE_MINUTES")

    chat_message_max_length: int = Field(default=5000, env="CHAT_MESSAGE_MAX_LENGTH")
    chat_max_file_size: int = Field(
        default=10 * 1024 * 1024,
        env="CHAT_MAX_FILE_SIZE",
        description="Maximum attachment size in bytes",
    )
    chat_group_name_max_length: int = Field(default=255, env="CHAT_GROUP_NAME_MAX_LENGTH")
    chat_recent_preview_limit: int = Field(
        default=20,
        env="CHAT_RECENT_PREVIEW_LIMIT",
        description="Messages kept per author in the recentByUser preview map",
    )
    chat_mark_read_on_view: bool = Field(
        default=True,
        env="CHAT_MARK_READ_ON_VIEW",
        description="Fetching a room's messages also marks them read unless the request opts out",
    )
    chat_presence_stale_after_seconds: int | None = Field(
        default=None,
        env="CHAT_PRESENCE_STALE_AFTER_SECONDS",
        description="Treat online users as offline when their last heartbeat is older than this",
    )

    media_root: Path = Field(default=Path("uploads"), env="MEDIA_ROOT")
    media_base_url: str = Field(default="/storage", env="MEDIA_BASE_URL")

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
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

    @field_validator("chat_presence_stale_after_seconds", mode="before")
    @classmethod
    def blank_means_disabled(cls, value):
        if value in ("", Ellipsis):
            return None
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
