"""Typed exceptions for billing failures."""

from uuid import UUID


class BillingError(Exception):
    """Base class for billing errors that are not input errors."""


class InvoiceValidationError(ValueError):
    """
    An invoice (or a draft of one) breaks a composition rule.

    Raised before any write or remote call, so nothing is persisted.

    Attributes:
        rule: Machine-readable name of the violated rule
        item_index: Zero-based position of the offending line item, if any
    """

    def __init__(self, message: str, rule: str, item_index: int | None = None):
        self.rule = rule
        self.item_index = item_index
        super().__init__(message)


class InvalidStatusTransitionError(ValueError):
    """Requested operation is not valid from the invoice's current status."""

    def __init__(self, invoice_id: UUID, current: str, attempted: str):
        self.invoice_id = invoice_id
        self.current = current
        self.attempted = attempted
        super().__init__(f"Invoice {invoice_id} is {current}; cannot {attempted}")


class LineItemsLockedError(ValueError):
    """Line items cannot change once a payment has posted or the invoice is paid."""

    def __init__(self, invoice_id: UUID):
        self.invoice_id = invoice_id
        super().__init__(
            f"Invoice {invoice_id} has payments; line items can no longer be edited"
        )


class DuplicateSubmissionError(BillingError):
    """The same submission is already being (or has been) processed."""

    def __init__(self, submission_key: str):
        self.submission_key = submission_key
        super().__init__(f"Submission {submission_key} is already in progress")


class PaymentFailedError(BillingError):
    """The processor did not settle the charge. Invoice status is unchanged."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Payment failed: {reason}")
