from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from starlette.requests import Request

DEV_ADMIN_TOKEN = "DEV_TOKEN_CHANGE_ME"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
        frozen=True,
    )

    port: int = 3000
    # Used to build the approve/reject links in notification mails
    public_base_url: str | None = Field(
        default=None, validation_alias=AliasChoices("PUBLIC_BASE_URL", "BASE_URL")
    )
    admin_token: str = Field(
        default=DEV_ADMIN_TOKEN, validation_alias=AliasChoices("ADMIN_TOKEN", "MOD_SECRET")
    )

    mail_to: str = Field(
        default="info@example.com", validation_alias=AliasChoices("MAIL_TO", "ADMIN_EMAIL")
    )
    mail_from: str = Field(
        default="Guestbook <noreply@example.com>",
        validation_alias=AliasChoices("MAIL_FROM", "FROM_EMAIL"),
    )

    smtp_host: str = ""
    smtp_port: int = 587
    # None means: implicit TLS on port 465, STARTTLS otherwise
    smtp_secure: bool | None = None
    smtp_user: str = ""
    smtp_pass: str = ""
    smtp_timeout_seconds: float = 10.0
    smtp_verify_on_startup: bool = True

    db_path: str = "guestbook.db"
    cors_origins: list[str] = ["*"]
    max_body_bytes: int = 50 * 1024

    allow_insecure: bool = Field(default=False, validation_alias="GUESTBOOK_ALLOW_INSECURE")

    @field_validator("smtp_host", "smtp_user", "smtp_pass", mode="before")
    @classmethod
    def _strip(cls, v: object) -> object:
        # Whitespace-only values must not count as configured
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def base_url(self) -> str:
        url = self.public_base_url or f"http://localhost:{self.port}"
        return url.rstrip("/")

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.db_path}"

    @property
    def smtp_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_pass)

    @property
    def smtp_use_ssl(self) -> bool:
        if self.smtp_secure is None:
            return self.smtp_port == 465
        return self.smtp_secure


def get_settings() -> Settings:
    return Settings()


def get_app_settings(request: Request) -> Settings:
    """FastAPI dependency returning the settings the running app was built with."""
    return request.app.state.settings
