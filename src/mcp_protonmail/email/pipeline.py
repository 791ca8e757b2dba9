"""Send pipeline: normalize, admit, submit, record."""

import logging
from collections.abc import Callable
from typing import Protocol

from mcp_protonmail.common.exceptions import SendFailed
from mcp_protonmail.email.admission import AllowListGuard, RateLimiter
from mcp_protonmail.email.outcome import LastOutcomeStore
from mcp_protonmail.email.validation import normalize_request
from mcp_protonmail.shared.models import NormalizedEmailRequest, SendEmailRequest, SendResult

logger = logging.getLogger(__name__)


class MailTransport(Protocol):
    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        is_html: bool = False,
        cc: str | None = None,
        bcc: str | None = None,
    ) -> str: ...

    async def verify_connection(self) -> bool: ...


def format_recipient_field(recipients: list[str]) -> str | None:
    return ", ".join(recipients) if recipients else None


def format_confirmation(request: NormalizedEmailRequest) -> str:
    text = f"Email sent successfully to {', '.join(request.to)}"
    if request.cc:
        text += f" (CC: {', '.join(request.cc)})"
    if request.bcc:
        text += f" (BCC: {', '.join(request.bcc)})"
    return text + "."


class SendOrchestrator:
    """Runs a validated request through the fixed send pipeline.

    Steps run in order and the first failure stops the request. An admitted
    request keeps its rate-limit slot even if the transport then fails.
    """

    def __init__(
        self,
        transport: MailTransport,
        allow_list: AllowListGuard,
        rate_limiter: RateLimiter,
        outcomes: LastOutcomeStore,
    ):
        self.transport = transport
        self.allow_list = allow_list
        self.rate_limiter = rate_limiter
        self.outcomes = outcomes

    def _check_allow_list(self, request: NormalizedEmailRequest) -> None:
        self.allow_list.enforce(request.all_recipients)

    def _admit(self, request: NormalizedEmailRequest) -> None:
        self.rate_limiter.admit()

    @property
    def admission_steps(self) -> tuple[Callable[[NormalizedEmailRequest], None], ...]:
        return (self._check_allow_list, self._admit)

    async def send(self, request: SendEmailRequest) -> SendResult:
        normalized = normalize_request(request)
        for step in self.admission_steps:
            step(normalized)
        return await self._dispatch(normalized)

    async def _dispatch(self, request: NormalizedEmailRequest) -> SendResult:
        try:
            message_id = await self.transport.send(
                to=", ".join(request.to),
                subject=request.subject,
                body=request.body,
                is_html=request.is_html,
                cc=format_recipient_field(request.cc),
                bcc=format_recipient_field(request.bcc),
            )
        except Exception as e:
            reason = str(e)
            logger.error(f"Failed to send email: {reason}")
            self.outcomes.record_failure(reason)
            raise SendFailed(reason) from e

        self.outcomes.record_success(detail=message_id)
        logger.info(f"Email sent to {len(request.all_recipients)} recipient(s)")
        return SendResult(
            message=format_confirmation(request),
            message_id=message_id or "",
            recipients=request.to,
            cc_recipients=request.cc,
            bcc_recipients=request.bcc,
        )
