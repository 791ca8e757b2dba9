"""Configuration management for the Protonmail MCP server."""

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TLS_VERSIONS = ("TLSv1", "TLSv1.1", "TLSv1.2", "TLSv1.3")
DEFAULT_TLS_VERSION = "TLSv1.2"


class Settings(BaseSettings):
    """Settings read once at startup from PROTONMAIL_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PROTONMAIL_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Credentials
    username: str = Field(
        default="", description="SMTP account username, also used as the sender address."
    )
    password: str = Field(default="", description="SMTP account password or bridge token.")

    # SMTP endpoint
    host: str = Field(default="smtp.protonmail.ch", description="SMTP submission host.")
    port: int = Field(default=587, description="SMTP submission port.")
    secure: bool = Field(
        default=False, description="Use implicit TLS on connect (typically port 465)."
    )
    require_tls: bool = Field(
        default=True, description="Require a STARTTLS upgrade when not using implicit TLS."
    )
    tls_min_version: str = Field(
        default=DEFAULT_TLS_VERSION,
        description="Minimum TLS protocol version (TLSv1, TLSv1.1, TLSv1.2 or TLSv1.3).",
    )
    tls_reject_unauthorized: bool = Field(
        default=True, description="Reject servers presenting an unverifiable certificate."
    )
    connection_timeout_ms: int = Field(
        default=10000, description="Timeout for establishing the SMTP connection, in ms."
    )
    socket_timeout_ms: int = Field(
        default=10000, description="Timeout for each SMTP command round-trip, in ms."
    )

    # Abuse controls
    rate_limit_per_minute: int = Field(
        default=10, description="Maximum send attempts per minute. Zero or less disables."
    )
    allow_list: str = Field(
        default="",
        description="Comma-separated recipient addresses permitted to receive mail. Empty allows all.",
    )

    debug: bool = Field(
        default=False,
        validation_alias=AliasChoices("PROTONMAIL_DEBUG", "DEBUG"),
        description="Enable debug logging.",
    )

    @field_validator("tls_min_version", mode="before")
    @classmethod
    def _normalize_tls_version(cls, value: object) -> str:
        return value if value in TLS_VERSIONS else DEFAULT_TLS_VERSION

    @property
    def allow_list_entries(self) -> frozenset[str]:
        """Lower-cased allow list entries."""
        entries = (entry.strip().lower() for entry in self.allow_list.split(","))
        return frozenset(entry for entry in entries if entry)

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)


settings = Settings()
