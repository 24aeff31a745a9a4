"""Tests for SubmissionGuard - one invoice per submission key."""

import pytest

from core.exceptions import DuplicateSubmissionError
from core.submission_guard import SubmissionGuard


@pytest.fixture
def guard(valkey):
    return SubmissionGuard(valkey, ttl_seconds=60)


class TestClaim:

    def test_first_claim_succeeds(self, guard, valkey):
        guard.claim("form-1")

        assert "invoice_submit:form-1" in valkey.data
        assert valkey.expiry["invoice_submit:form-1"] == 60

    def test_second_claim_rejected(self, guard):
        guard.claim("form-1")

        with pytest.raises(DuplicateSubmissionError) as exc_info:
            guard.claim("form-1")

        assert exc_info.value.submission_key == "form-1"

    def test_release_allows_retry(self, guard):
        guard.claim("form-1")
        guard.release("form-1")

        guard.claim("form-1")


class TestHold:

    def test_success_keeps_claim(self, guard, valkey):
        with guard.hold("form-1"):
            pass

        assert "invoice_submit:form-1" in valkey.data

    def test_failure_releases_claim(self, guard, valkey):
        with pytest.raises(RuntimeError):
            with guard.hold("form-1"):
                raise RuntimeError("insert failed")

        assert "invoice_submit:form-1" not in valkey.data

    def test_no_key_is_noop(self, guard, valkey):
        with guard.hold(None):
            pass

        valkey.set_if_absent.assert_not_called()
