"""Tests for the auth exception hierarchy."""

import pytest

from auth.exceptions import (
    AuthError,
    InvalidTokenError,
    PermissionDeniedError,
    SessionExpiredError,
)


@pytest.mark.parametrize("exc", [InvalidTokenError, SessionExpiredError, PermissionDeniedError])
def test_all_auth_errors_share_base(exc):
    """Callers can catch AuthError for any auth failure."""
    with pytest.raises(AuthError, match="denied"):
        raise exc("denied")
