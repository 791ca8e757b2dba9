from datetime import datetime, timezone
from typing import Annotated, Literal

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision."""
    return (
        value.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class ServerInfo(BaseModel):
    """Standardized server information."""

    name: str = Field(..., description="The name of the MCP tool server.")
    version: str = Field(..., description="The version of the server.")
    status: str = Field(
        ...,
        description="The operational status of the server (e.g., 'active', 'error').",
    )
    capabilities: list[str] = Field(
        default_factory=list,
        description="A list of functions or features the tool provides.",
    )
    dependencies: dict[str, str] = Field(
        default_factory=dict,
        description="A dictionary of configuration facts and dependency statuses.",
    )


class SendEmailRequest(BaseModel):
    """Raw send request, checked for shape and length only."""

    to: str = Field(
        ...,
        min_length=1,
        max_length=2048,
        description="Recipient email address(es), separated by commas.",
    )
    subject: str = Field(..., min_length=1, max_length=512, description="Email subject line.")
    body: str = Field(..., min_length=1, max_length=20000, description="Email body content.")
    isHtml: bool = Field(default=False, description="Whether the body contains HTML content.")
    cc: str | None = Field(default=None, description="CC recipient(s), separated by commas.")
    bcc: str | None = Field(default=None, description="BCC recipient(s), separated by commas.")


class NormalizedEmailRequest(BaseModel):
    """Send request after recipient splitting and header sanitizing."""

    to: list[str] = Field(..., min_length=1, description="Primary recipients, in input order.")
    subject: str = Field(..., description="Trimmed subject line free of line breaks.")
    body: str = Field(..., description="Unmodified body content.")
    is_html: bool = Field(default=False, description="Send the body as HTML.")
    cc: list[str] = Field(default_factory=list, description="CC recipients, in input order.")
    bcc: list[str] = Field(default_factory=list, description="BCC recipients, in input order.")

    @property
    def all_recipients(self) -> list[str]:
        return [*self.to, *self.cc, *self.bcc]


class SendResult(BaseModel):
    """Result of a successful send."""

    message: str = Field(..., description="Human-readable confirmation.")
    message_id: str = Field(default="", description="Message-ID assigned to the email.")
    recipients: list[str] = Field(..., description="Addresses in the 'To' field.")
    cc_recipients: list[str] = Field(
        default_factory=list, description="Addresses in the 'Cc' field."
    )
    bcc_recipients: list[str] = Field(
        default_factory=list, description="Addresses in the 'Bcc' field."
    )


class SendSuccess(BaseModel):
    """A send attempt accepted by the SMTP server."""

    status: Literal["success"] = "success"
    timestamp: datetime = Field(default_factory=utc_now)
    detail: str | None = Field(
        default=None, description="Transport detail such as the Message-ID."
    )

    def describe(self) -> str:
        text = f"success at {format_timestamp(self.timestamp)}"
        return f"{text} ({self.detail})" if self.detail else text


class SendFailure(BaseModel):
    """A send attempt that failed in the transport."""

    status: Literal["error"] = "error"
    timestamp: datetime = Field(default_factory=utc_now)
    error: str = Field(..., description="Textual description of the failure.")

    def describe(self) -> str:
        return f"error at {format_timestamp(self.timestamp)}: {self.error}"


LastSendOutcome = Annotated[SendSuccess | SendFailure, Field(discriminator="status")]
