"""Single-slot memory of the most recent send attempt."""

import threading

from mcp_protonmail.shared.models import LastSendOutcome, SendFailure, SendSuccess


class LastOutcomeStore:
    """Holds the latest send outcome, overwritten by every attempt."""

    def __init__(self):
        self._lock = threading.Lock()
        self._outcome: LastSendOutcome | None = None

    def record_success(self, detail: str | None = None) -> SendSuccess:
        outcome = SendSuccess(detail=detail or None)
        with self._lock:
            self._outcome = outcome
        return outcome

    def record_failure(self, message: str) -> SendFailure:
        outcome = SendFailure(error=message)
        with self._lock:
            self._outcome = outcome
        return outcome

    def get(self) -> LastSendOutcome | None:
        with self._lock:
            return self._outcome

    def describe(self) -> str:
        outcome = self.get()
        return outcome.describe() if outcome else "no attempts yet"
