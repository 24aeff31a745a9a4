"""
Audit trail for billing changes.

One append-only audit_log row per invoice or payment mutation. Rows carry
the acting operator (SYSTEM_ACTOR_ID when the payment processor reports a
settlement) and the changed values, so an invoice's history can be shown
next to it in the dashboard.
"""

from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.timezone import now_utc
from utils.user_context import get_current_user_id

SYSTEM_ACTOR_ID = UUID(int=0)


class AuditEntity(str, Enum):
    INVOICE = "invoice"
    PAYMENT = "payment"


class AuditAction(Enum):
    CREATE = "create"
    UPDATE = "update"


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Field-level diff of two model_dump(mode="json") snapshots.

    Returns {field: {"old": ..., "new": ...}} for every field whose value
    differs, ignoring updated_at unless exclude_fields says otherwise.
    """
    exclude = exclude_fields or {"updated_at"}
    return {
        key: {"old": old.get(key), "new": new.get(key)}
        for key in old.keys() | new.keys()
        if key not in exclude and old.get(key) != new.get(key)
    }


class AuditLogger:
    """
    Writes and reads audit_log.

    Services call log_change after their transaction commits, so a rolled
    back write never leaves an audit row behind.
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        entity_type: AuditEntity | str,
        entity_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
        user_id: UUID | None = None
    ) -> None:
        """
        Record one change.

        `changes` is {"created": {...}} for CREATE and a compute_changes()
        style diff (optionally with summary keys) for UPDATE. The actor
        defaults to the operator in the current user context; a missing
        context raises RuntimeError.
        """
        entity = AuditEntity(entity_type)
        actor = user_id if user_id is not None else get_current_user_id()

        self.postgres.execute(
            """
            INSERT INTO audit_log (id, user_id, entity_type, entity_id, action, changes, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (uuid4(), actor, entity.value, entity_id, action.value, Json(changes), now_utc())
        )

    def get_entity_history(
        self,
        entity_type: AuditEntity | str,
        entity_id: UUID,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """Audit entries for one invoice or payment, newest first."""
        return self.postgres.execute(
            """
            SELECT id, user_id, entity_type, entity_id, action, changes, created_at
            FROM audit_log
            WHERE entity_type = %s AND entity_id = %s
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (AuditEntity(entity_type).value, entity_id, limit)
        )
