"""Request validation, header sanitizing and recipient normalization."""

import re
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from mcp_protonmail.common.exceptions import (
    EmptyRecipientError,
    HeaderInjectionError,
    RequestValidationError,
)
from mcp_protonmail.shared.models import NormalizedEmailRequest, SendEmailRequest

HEADER_INJECTION_PATTERN = re.compile(r"[\r\n]")

_REQUIRED_ERROR_TYPES = {"missing", "string_too_short"}


def _format_issue(error: dict[str, Any]) -> str:
    path = ".".join(str(part) for part in error["loc"]) or "input"
    if error["type"] in _REQUIRED_ERROR_TYPES:
        return f"{path}: '{path}' is required"
    return f"{path}: {error['msg']}"


def validate_send_request(raw: Any) -> SendEmailRequest:
    """Check raw tool arguments against the send request schema.

    All violations are reported together, one ``<field>: <message>`` entry
    per problem, separated by semicolons.
    """
    if not isinstance(raw, Mapping):
        raise RequestValidationError("Invalid arguments")

    # Optional fields may arrive as explicit nulls from some clients.
    arguments = {key: value for key, value in raw.items() if value is not None}
    try:
        return SendEmailRequest.model_validate(arguments)
    except ValidationError as e:
        issues = "; ".join(_format_issue(error) for error in e.errors())
        raise RequestValidationError(issues) from e


def contains_line_break(value: str) -> bool:
    return HEADER_INJECTION_PATTERN.search(value) is not None


def sanitize_header(value: str, field_name: str) -> str:
    """Reject CR/LF in a header-bound value and return it trimmed."""
    if contains_line_break(value):
        raise HeaderInjectionError(field_name)
    return value.strip()


def normalize_recipients(raw: str | None, field_name: str) -> list[str]:
    """Split a comma-separated recipient string into trimmed addresses.

    Order is preserved and duplicates are kept. Empty input gives an empty
    list; callers decide whether a list may be empty.
    """
    if not raw:
        return []

    if contains_line_break(raw):
        raise HeaderInjectionError(field_name)

    entries = (entry.strip() for entry in raw.split(","))
    return [entry for entry in entries if entry]


def normalize_request(request: SendEmailRequest) -> NormalizedEmailRequest:
    """Normalize recipients and subject of a validated request.

    An empty ``to`` list is reported before ``cc`` and ``bcc`` are looked at.
    """
    to = normalize_recipients(request.to, "to")
    if not to:
        raise EmptyRecipientError()

    return NormalizedEmailRequest(
        to=to,
        subject=sanitize_header(request.subject, "subject"),
        body=request.body,
        is_html=request.isHtml,
        cc=normalize_recipients(request.cc, "cc"),
        bcc=normalize_recipients(request.bcc, "bcc"),
    )
