"""Protonmail email sending tool via MCP."""

import logging
import threading
from collections.abc import Callable
from contextvars import ContextVar
from typing import Any, NamedTuple

from mcp import types
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.shared.exceptions import McpError
from mcp.types import METHOD_NOT_FOUND, ErrorData
from pydantic import Field

from mcp_protonmail.common.config import Settings, settings
from mcp_protonmail.email.admission import AllowListGuard, RateLimiter
from mcp_protonmail.email.health import HealthReporter
from mcp_protonmail.email.outcome import LastOutcomeStore
from mcp_protonmail.email.pipeline import SendOrchestrator
from mcp_protonmail.email.transport import SmtpTransport
from mcp_protonmail.email.validation import validate_send_request
from mcp_protonmail.shared.models import ServerInfo

logger = logging.getLogger(__name__)

SERVER_NAME = "protonmail-mcp"
SERVER_VERSION = "0.1.0"

# McpErrors raised while the current tools/call request is being handled.
_call_errors: ContextVar[list[McpError] | None] = ContextVar("_call_errors", default=None)


class GatewayMCP(FastMCP):
    """FastMCP server that answers failed tool calls with JSON-RPC errors.

    FastMCP turns every tool exception into an ``isError`` text result, which
    loses the MCP error code. Here an ``McpError`` raised by a tool, or by an
    argument check, is sent back as a protocol error carrying its code, and
    unknown tool names are rejected with METHOD_NOT_FOUND.
    """

    def __init__(self, name: str | None = None, **kwargs: Any):
        self._argument_checks: dict[str, Callable[[dict[str, Any]], Any]] = {}
        super().__init__(name, **kwargs)

    def add_argument_check(self, tool_name: str, check: Callable[[dict[str, Any]], Any]) -> None:
        """Run ``check`` on the raw arguments before FastMCP parses them."""
        self._argument_checks[tool_name] = check

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        try:
            return await self._call_checked_tool(name, arguments)
        except McpError as e:
            raised = _call_errors.get()
            if raised is not None:
                raised.append(e)
            raise

    async def _call_checked_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        if self._tool_manager.get_tool(name) is None:
            raise McpError(ErrorData(code=METHOD_NOT_FOUND, message=f"Unknown tool: {name}"))

        check = self._argument_checks.get(name)
        if check is not None:
            check(arguments)

        try:
            return await super().call_tool(name, arguments)
        except ToolError as e:
            if isinstance(e.__cause__, McpError):
                raise e.__cause__ from None
            raise

    def _setup_handlers(self) -> None:
        super()._setup_handlers()
        handle_call_tool = self._mcp_server.request_handlers[types.CallToolRequest]

        async def handler(req: types.CallToolRequest) -> types.ServerResult:
            raised: list[McpError] = []
            token = _call_errors.set(raised)
            try:
                result = await handle_call_tool(req)
            finally:
                _call_errors.reset(token)
            if raised:
                raise raised[0]
            return result

        self._mcp_server.request_handlers[types.CallToolRequest] = handler


mcp = GatewayMCP(SERVER_NAME)


class Gateway(NamedTuple):
    """Send and health components sharing one set of process-wide state."""

    transport: SmtpTransport
    allow_list: AllowListGuard
    rate_limiter: RateLimiter
    outcomes: LastOutcomeStore
    orchestrator: SendOrchestrator
    health: HealthReporter


def build_gateway(config: Settings) -> Gateway:
    transport = SmtpTransport.from_settings(config)
    allow_list = AllowListGuard(config.allow_list_entries)
    rate_limiter = RateLimiter(config.rate_limit_per_minute)
    outcomes = LastOutcomeStore()
    return Gateway(
        transport=transport,
        allow_list=allow_list,
        rate_limiter=rate_limiter,
        outcomes=outcomes,
        orchestrator=SendOrchestrator(transport, allow_list, rate_limiter, outcomes),
        health=HealthReporter(transport, allow_list, rate_limiter, outcomes),
    )


# Lazy initialization of the shared gateway
_gateway: Gateway | None = None
_gateway_lock = threading.Lock()


def get_gateway() -> Gateway:
    """Get or create the process-wide gateway with thread safety."""
    global _gateway
    with _gateway_lock:
        if _gateway is None:
            _gateway = build_gateway(settings)
    return _gateway


@mcp.tool(
    description="Send an email using Protonmail SMTP. Multiple recipients in `to`, `cc` and `bcc` are separated by commas. Set `isHtml=True` when the body is HTML. Subject and recipient fields must not contain line breaks. Sends may be refused by the recipient allow list or the per-minute rate limit."
)
async def send_email(
    to: str = Field(
        ...,
        description="Recipient email address(es). Multiple addresses can be separated by commas.",
    ),
    subject: str = Field(..., description="Email subject line."),
    body: str = Field(..., description="Email body content (plain text or HTML)."),
    isHtml: bool = Field(default=False, description="Whether the body contains HTML content."),
    cc: str | None = Field(default=None, description="CC recipient(s), separated by commas."),
    bcc: str | None = Field(default=None, description="BCC recipient(s), separated by commas."),
) -> str:
    """Validate, admit and send an email, returning a confirmation."""
    logger.debug("Executing tool: send_email")
    request = validate_send_request(
        {"to": to, "subject": subject, "body": body, "isHtml": isHtml, "cc": cc, "bcc": bcc}
    )
    result = await get_gateway().orchestrator.send(request)
    return result.message


# Shape errors are reported by validate_send_request, not by the FastMCP argument model.
mcp.add_argument_check("send_email", validate_send_request)


@mcp.tool(
    description="Check SMTP connectivity, rate limit state, allow list configuration, and the outcome of the last send attempt. Never fails; problems are reported in the text."
)
async def health_check() -> str:
    """Build the plain-text health report."""
    logger.debug("Executing tool: health_check")
    return await get_gateway().health.report()


@mcp.tool(
    description="Get Protonmail server information including configured SMTP endpoint and admission controls."
)
def server_info() -> ServerInfo:
    """Get server status without contacting the SMTP server."""
    gateway = get_gateway()
    transport = gateway.transport
    return ServerInfo(
        name=SERVER_NAME,
        version=SERVER_VERSION,
        status="active",
        capabilities=["send_email", "health_check", "server_info"],
        dependencies={
            "smtp_host": f"{transport.host}:{transport.port}",
            "tls": transport.tls_mode,
            "rate_limit": gateway.rate_limiter.describe(),
            "allow_list": gateway.allow_list.describe(),
        },
    )
