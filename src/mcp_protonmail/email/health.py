"""Health report for the SMTP gateway."""

import logging

from mcp_protonmail.email.admission import AllowListGuard, RateLimiter
from mcp_protonmail.email.outcome import LastOutcomeStore
from mcp_protonmail.email.pipeline import MailTransport

logger = logging.getLogger(__name__)


class HealthReporter:
    """Builds a four-line plain-text status report.

    Each line is gathered on its own; a failure in one is written into the
    report instead of being raised.
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

    async def smtp_status(self) -> str:
        try:
            await self.transport.verify_connection()
        except Exception as e:
            return f"error: {e}"
        return "ok"

    @staticmethod
    def _safe(describe) -> str:
        try:
            return describe()
        except Exception as e:
            logger.exception("Health report section failed")
            return f"unavailable: {e}"

    async def report(self) -> str:
        lines = [
            f"SMTP: {await self.smtp_status()}",
            f"Rate limit: {self._safe(self.rate_limiter.describe)}",
            f"Allow list: {self._safe(self.allow_list.describe)}",
            f"Last send: {self._safe(self.outcomes.describe)}",
        ]
        return "\n".join(lines)
