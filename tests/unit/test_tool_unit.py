"""Unit tests for the MCP tool functions."""
from unittest.mock import patch

import pytest
from mcp.shared.exceptions import McpError
from mcp.shared.memory import create_connected_server_and_client_session
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST, METHOD_NOT_FOUND

from mcp_protonmail.common.config import Settings
from mcp_protonmail.common.exceptions import (
    AllowListViolation,
    EmptyRecipientError,
    RequestValidationError,
)
from mcp_protonmail.email import tool
from mcp_protonmail.email.health import HealthReporter
from mcp_protonmail.email.pipeline import SendOrchestrator
from mcp_protonmail.email.tool import Gateway, build_gateway, health_check, send_email, server_info


@pytest.fixture
def gateway(mock_transport):
    config = Settings(
        username="me@example.com",
        password="secret",
        rate_limit_per_minute=2,
        allow_list="A@x.com, b@x.com,,",
    )
    built = build_gateway(config)
    shared = (built.allow_list, built.rate_limiter, built.outcomes)
    test_gateway = built._replace(
        transport=mock_transport,
        orchestrator=SendOrchestrator(mock_transport, *shared),
        health=HealthReporter(mock_transport, *shared),
    )
    with patch.object(tool, "_gateway", test_gateway):
        yield test_gateway


async def _send(**overrides):
    arguments = {
        "to": "a@x.com",
        "subject": "Hello",
        "body": "Body",
        "isHtml": False,
        "cc": None,
        "bcc": None,
    }
    arguments.update(overrides)
    return await send_email(**arguments)


class TestBuildGateway:
    """Test wiring of the shared components."""

    def test_components_share_state(self):
        config = Settings(username="me@example.com", password="secret", allow_list="a@x.com")
        gateway = build_gateway(config)
        assert isinstance(gateway, Gateway)
        assert gateway.orchestrator.rate_limiter is gateway.rate_limiter
        assert gateway.health.rate_limiter is gateway.rate_limiter
        assert gateway.orchestrator.outcomes is gateway.health.outcomes
        assert gateway.allow_list.size == 1
        assert gateway.rate_limiter.limit == 10

    def test_get_gateway_is_cached(self):
        with patch.object(tool, "_gateway", None), patch.object(
            tool, "build_gateway", wraps=build_gateway
        ) as mock_build:
            first = tool.get_gateway()
            second = tool.get_gateway()
        assert first is second
        mock_build.assert_called_once()


class TestSendEmailTool:
    """Test the send_email tool."""

    @pytest.mark.asyncio
    async def test_send_returns_confirmation(self, gateway, mock_transport):
        result = await _send(to="a@x.com", cc="B@x.com")
        assert result == "Email sent successfully to a@x.com (CC: B@x.com)."
        mock_transport.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_length_validation(self, gateway, mock_transport):
        with pytest.raises(RequestValidationError) as exc_info:
            await _send(subject="x" * 513)
        assert str(exc_info.value).startswith("subject: ")
        mock_transport.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_recipients(self, gateway, mock_transport):
        with pytest.raises(EmptyRecipientError):
            await _send(to=" , ")
        mock_transport.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_allow_list_from_settings(self, gateway, mock_transport):
        with pytest.raises(AllowListViolation) as exc_info:
            await _send(to="a@x.com", bcc="c@x.com")
        assert exc_info.value.recipients == ["c@x.com"]
        mock_transport.send.assert_not_awaited()


class TestHealthCheckTool:
    """Test the health_check tool."""

    @pytest.mark.asyncio
    async def test_health_after_send(self, gateway):
        await _send()
        report = await health_check()
        lines = report.splitlines()
        assert lines[0] == "SMTP: ok"
        assert lines[1] == "Rate limit: 1/2 in current minute window"
        assert lines[2] == "Allow list: enabled (2 entries)"
        assert lines[3].startswith("Last send: success at ")

    def test_server_info(self):
        with patch.object(tool, "_gateway", build_gateway(Settings(username="u", password="p"))):
            info = server_info()
        assert info.name == "protonmail-mcp"
        assert info.status == "active"
        assert "send_email" in info.capabilities
        assert "health_check" in info.capabilities
        assert info.dependencies["smtp_host"] == "smtp.protonmail.ch:587"
        assert info.dependencies["tls"] == "starttls required"
        assert info.dependencies["allow_list"] == "disabled"


@pytest.mark.asyncio
async def test_tools_registered():
    tools = await tool.mcp.list_tools()
    names = {t.name for t in tools}
    assert {"send_email", "health_check", "server_info"} <= names

    send_tool = next(t for t in tools if t.name == "send_email")
    properties = send_tool.inputSchema["properties"]
    assert set(properties) == {"to", "subject", "body", "isHtml", "cc", "bcc"}
    assert set(send_tool.inputSchema["required"]) == {"to", "subject", "body"}


async def _call_tool(name, arguments):
    async with create_connected_server_and_client_session(tool.mcp._mcp_server) as client:
        return await client.call_tool(name, arguments)


async def _call_error(name, arguments):
    async with create_connected_server_and_client_session(tool.mcp._mcp_server) as client:
        with pytest.raises(McpError) as exc_info:
            await client.call_tool(name, arguments)
    return exc_info.value.error


class TestClientSession:
    """Test tool calls made by an MCP client over an in-memory session."""

    @pytest.mark.asyncio
    async def test_send_success(self, gateway, mock_transport):
        result = await _call_tool("send_email", {"to": "a@x.com", "subject": "Hi", "body": "Body"})
        assert result.isError is False
        assert result.content[0].text == "Email sent successfully to a@x.com."
        mock_transport.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_arguments_reported_together(self, gateway, mock_transport):
        error = await _call_error("send_email", {})
        assert error.code == INVALID_PARAMS
        assert error.message == (
            "to: 'to' is required; subject: 'subject' is required; body: 'body' is required"
        )
        mock_transport.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_wrong_type_reported_with_missing_fields(self, gateway):
        error = await _call_error("send_email", {"body": "b", "cc": 5})
        assert error.code == INVALID_PARAMS
        assert error.message.startswith(
            "to: 'to' is required; subject: 'subject' is required; cc: "
        )
        assert "errors.pydantic.dev" not in error.message

    @pytest.mark.asyncio
    async def test_empty_recipients_invalid_params(self, gateway):
        error = await _call_error("send_email", {"to": " , ", "subject": "Hi", "body": "Body"})
        assert error.code == INVALID_PARAMS
        assert error.message == "At least one recipient is required"

    @pytest.mark.asyncio
    async def test_header_injection_invalid_params(self, gateway):
        error = await _call_error(
            "send_email", {"to": "a@x.com", "subject": "Hi\r\nBcc: z@x.com", "body": "Body"}
        )
        assert error.code == INVALID_PARAMS
        assert error.message == "'subject' cannot include newline characters"

    @pytest.mark.asyncio
    async def test_allow_list_invalid_request(self, gateway, mock_transport):
        error = await _call_error("send_email", {"to": "z@x.com", "subject": "Hi", "body": "Body"})
        assert error.code == INVALID_REQUEST
        assert error.message == "Recipient(s) not permitted by allow list: z@x.com"
        mock_transport.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rate_limit_invalid_request(self, gateway):
        arguments = {"to": "a@x.com", "subject": "Hi", "body": "Body"}
        await _call_tool("send_email", arguments)
        await _call_tool("send_email", arguments)
        error = await _call_error("send_email", arguments)
        assert error.code == INVALID_REQUEST
        assert error.message == "Rate limit exceeded (2 emails per minute)"

    @pytest.mark.asyncio
    async def test_transport_failure_internal_error(self, gateway, mock_transport):
        mock_transport.send.side_effect = OSError("Connection reset")
        error = await _call_error("send_email", {"to": "a@x.com", "subject": "Hi", "body": "Body"})
        assert error.code == INTERNAL_ERROR
        assert error.message == "Failed to send email: Connection reset"

        result = await _call_tool("health_check", {})
        assert result.isError is False
        assert "Last send: error at " in result.content[0].text

    @pytest.mark.asyncio
    async def test_unknown_tool_method_not_found(self, gateway):
        error = await _call_error("nope", {})
        assert error.code == METHOD_NOT_FOUND
        assert error.message == "Unknown tool: nope"
