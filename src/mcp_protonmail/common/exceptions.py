"""Custom exceptions for the email gateway.

Every error carries an MCP error code so the protocol layer can tell
caller-fixable input problems from admission refusals and transport failures.
"""

from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST, ErrorData


class GatewayError(McpError):
    """Base class for errors surfaced to the MCP client."""

    code = INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(ErrorData(code=self.code, message=message))
        self.message = message


class RequestValidationError(GatewayError):
    """Raised when the raw send request has the wrong shape or lengths."""

    code = INVALID_PARAMS


class HeaderInjectionError(GatewayError):
    """Raised when a header-bound field contains a line break."""

    code = INVALID_PARAMS

    def __init__(self, field_name: str):
        super().__init__(f"'{field_name}' cannot include newline characters")
        self.field_name = field_name


class EmptyRecipientError(GatewayError):
    """Raised when no usable 'to' address survives normalization."""

    code = INVALID_PARAMS

    def __init__(self):
        super().__init__("At least one recipient is required")


class AllowListViolation(GatewayError):
    code = INVALID_REQUEST

    def __init__(self, recipients: list[str]):
        super().__init__(
            f"Recipient(s) not permitted by allow list: {', '.join(recipients)}"
        )
        self.recipients = recipients


class RateLimitExceeded(GatewayError):
    code = INVALID_REQUEST

    def __init__(self, limit: int | float):
        super().__init__(f"Rate limit exceeded ({limit} emails per minute)")
        self.limit = limit


class SendFailed(GatewayError):
    """Raised when the SMTP transport rejects or fails a submission."""

    code = INTERNAL_ERROR

    def __init__(self, reason: str):
        super().__init__(f"Failed to send email: {reason}")
        self.reason = reason


class ConnectivityError(GatewayError):
    """Raised when the SMTP connection cannot be verified."""

    code = INTERNAL_ERROR
