"""Propagate the acting operator through the call stack using contextvars.

The auth middleware sets the operator's user id (for audit attribution) and
the identity provider access token (forwarded to callable backend functions).
"""

from contextlib import contextmanager
from contextvars import ContextVar
from uuid import UUID

_current_user_id: ContextVar[UUID | None] = ContextVar("current_user_id", default=None)
_current_access_token: ContextVar[str | None] = ContextVar("current_access_token", default=None)


def get_current_user_id() -> UUID:
    """
    Get the acting operator's user ID.

    Raises RuntimeError if no operator context is set. Mutations are always
    attributed, so reaching this without a context is a bug.
    """
    user_id = _current_user_id.get()
    if user_id is None:
        raise RuntimeError(
            "No user context set. This usually means you're calling "
            "operator-scoped code outside of an authenticated request."
        )
    return user_id


def get_current_access_token() -> str | None:
    """Identity provider access token of the current operator, if any."""
    return _current_access_token.get()


def set_current_user_id(user_id: UUID, access_token: str | None = None) -> None:
    """
    Set the operator context.

    Called by auth middleware after validating the session.
    """
    _current_user_id.set(user_id)
    _current_access_token.set(access_token)


def clear_current_user_id() -> None:
    """
    Clear the operator context.

    Must be called in a finally block to prevent context leakage.
    """
    _current_user_id.set(None)
    _current_access_token.set(None)


@contextmanager
def user_context(user_id: UUID, access_token: str | None = None):
    """
    Temporarily act as the given operator.

    Useful for tests and webhook processing, where there is no session.

    Example:
        with user_context(SYSTEM_ACTOR_ID):
            invoice_service.mark_paid(invoice_id, intent_id, amount)
    """
    previous_user = _current_user_id.get()
    previous_token = _current_access_token.get()
    set_current_user_id(user_id, access_token)
    try:
        yield
    finally:
        if previous_user is None:
            clear_current_user_id()
        else:
            set_current_user_id(previous_user, previous_token)
