"""Composer configuration and environment-driven defaults."""

from enum import IntEnum
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .encoding import MAX_LINE_LENGTH
from .transport import SendmailTransport, SmtpTransport, Transport


class Priority(IntEnum):
    HIGHEST = 1
    HIGH = 2
    NORMAL = 3
    LOW = 4
    LOWEST = 5

    @property
    def header(self) -> str:
        """X-Priority header value, e.g. ``3 (Normal)``."""
        return f"{self.value} ({self.name.capitalize()})"


TransferEncoding = Literal["quoted-printable", "base64", "7bit", "8bit"]


class MailConfig(BaseModel):
    """Per-draft settings read by the send pipeline."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    is_html: bool = False
    generate_alt: bool = True
    auto_attach: bool = True
    charset: str = "utf-8"
    encoding: TransferEncoding = "8bit"
    wordwrap: int | None = MAX_LINE_LENGTH
    newline: Literal["\r\n", "\n"] = "\n"
    priority: Priority = Priority.NORMAL
    useragent: str = "ezcompose"
    validate_addresses: bool = True

    @field_validator("wordwrap")
    @classmethod
    def cap_wordwrap(cls, value: int | None) -> int | None:
        if not value or value < 0:
            return None
        return min(value, MAX_LINE_LENGTH)

    @property
    def line_width(self) -> int:
        """Width used for base64 attachment lines."""
        return self.wordwrap or MAX_LINE_LENGTH


class MailSettings(BaseSettings):
    """Defaults loaded from ``EZCOMPOSE_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="EZCOMPOSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Message defaults
    is_html: bool = False
    generate_alt: bool = True
    auto_attach: bool = True
    charset: str = "utf-8"
    encoding: TransferEncoding = "8bit"
    wordwrap: int | None = MAX_LINE_LENGTH
    newline: Literal["\r\n", "\n"] = "\n"
    priority: Priority = Priority.NORMAL
    useragent: str = "ezcompose"
    validate_addresses: bool = True

    # Default sender
    from_email: str | None = None
    from_name: str | None = None

    # Transport
    driver: Literal["smtp", "sendmail"] = "smtp"
    sendmail_path: str = "/usr/sbin/sendmail"
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_username: str | None = None
    smtp_password: SecretStr | None = Field(default=None)
    smtp_timeout: float = 30

    def mail_config(self) -> MailConfig:
        return MailConfig(**self.model_dump(include=set(MailConfig.model_fields)))

    def make_transport(self) -> Transport:
        """Builds the transport selected by ``driver``."""
        if self.driver == "sendmail":
            return SendmailTransport(self.sendmail_path, charset=self.charset)

        password = self.smtp_password.get_secret_value() if self.smtp_password else None
        return SmtpTransport(
            self.smtp_host,
            self.smtp_port,
            username=self.smtp_username,
            password=password,
            timeout=self.smtp_timeout,
            charset=self.charset,
        )


@lru_cache
def get_settings() -> MailSettings:
    """Get cached settings instance."""
    return MailSettings()
