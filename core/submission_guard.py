"""
Duplicate-submission guard.

A create request may carry a submission key (the draft id, or a key the
dashboard generates per form) and a card payment is keyed on its payment
token. The first request claims the key in Valkey with SET NX; any repeat
inside the TTL is rejected. A failed attempt releases the key so the caller
can retry.
"""

import logging
from contextlib import contextmanager

from clients.valkey_client import ValkeyClient
from core.exceptions import DuplicateSubmissionError

logger = logging.getLogger(__name__)


class SubmissionGuard:
    KEY_PREFIX = "invoice_submit:"

    def __init__(self, valkey: ValkeyClient, ttl_seconds: int):
        self._valkey = valkey
        self._ttl_seconds = ttl_seconds

    def _key(self, submission_key: str) -> str:
        return f"{self.KEY_PREFIX}{submission_key}"

    def claim(self, submission_key: str) -> None:
        """Raises DuplicateSubmissionError if the key is already claimed."""
        if not self._valkey.set_if_absent(self._key(submission_key), "1", self._ttl_seconds):
            logger.warning(f"Duplicate submission rejected: {submission_key}")
            raise DuplicateSubmissionError(submission_key)

    def release(self, submission_key: str) -> None:
        self._valkey.delete(self._key(submission_key))

    @contextmanager
    def hold(self, submission_key: str | None):
        """Claim for the duration of a block; release only if the block fails."""
        if submission_key is None:
            yield
            return

        self.claim(submission_key)
        try:
            yield
        except Exception:
            self.release(submission_key)
            raise
