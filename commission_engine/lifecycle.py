"""
Installment Lifecycle

State machine for installment status and the invariants tying status to
paid_date / paid_amount. Works on any object exposing `status`, `amount`,
`paid_amount`, `paid_date` and `payment_notes` (persisted rows included).

    draft -> pending -> {partial, paid} -> {overdue, cancelled}

paid and cancelled are terminal. A recorded payment can be reversed
(paid/partial -> pending), which clears the payment fields.

An overdue installment keeps an earlier partial payment on record, but
only paid and partial installments count toward earned commission; the
partial amount is recognised again once the installment is paid.
"""

import logging
from datetime import date

from .config import DEFAULT_CONFIG, EngineConfig
from .exceptions import ConsistencyError, DomainValidationError, InvalidTransitionError
from .models import InstallmentStatus
from .money import ZERO, fmt, quantize_money, to_decimal

logger = logging.getLogger(__name__)

S = InstallmentStatus

TRANSITIONS = {
    S.DRAFT: frozenset({S.PENDING, S.CANCELLED}),
    S.PENDING: frozenset({S.PARTIAL, S.PAID, S.OVERDUE, S.CANCELLED}),
    S.PARTIAL: frozenset({S.PARTIAL, S.PAID, S.OVERDUE, S.CANCELLED}),
    S.OVERDUE: frozenset({S.PARTIAL, S.PAID, S.CANCELLED}),
    S.PAID: frozenset(),
    S.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({S.PAID, S.CANCELLED})
REVERSIBLE_STATUSES = frozenset({S.PAID, S.PARTIAL})


def payment_fields_problem(status, amount, paid_amount, paid_date) -> str | None:
    """
    Return a description of why the payment fields don't fit `status`, or None.

    paid:     paid_amount > 0 and paid_date set
    partial:  0 < paid_amount < amount and paid_date set
    overdue:  either unpaid, or still carrying an earlier partial payment
    others:   paid_amount null/zero and no paid_date
    """
    status = S(status)
    paid = to_decimal(paid_amount) if paid_amount is not None else None
    amount = to_decimal(amount)
    unpaid = (paid is None or paid == 0) and paid_date is None

    if status == S.PAID:
        if paid is None or paid <= 0 or paid_date is None:
            return "paid installments require a positive paid_amount and a paid_date"
        return None

    if status == S.PARTIAL:
        if paid is None or paid_date is None:
            return "partial installments require paid_amount and paid_date"
        if not (ZERO < paid < amount):
            return "partial paid_amount must be greater than zero and less than the installment amount"
        return None

    if status == S.OVERDUE:
        if unpaid:
            return None
        if paid is not None and ZERO < paid < amount and paid_date is not None:
            return None
        return "overdue installments may only carry a partial payment"

    if not unpaid:
        return f"{status.value} installments cannot carry paid_amount or paid_date"
    return None


class InstallmentLifecycle:
    """Applies status transitions to installments, enforcing payment invariants."""

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config

    @staticmethod
    def can_transition(from_status, to_status) -> bool:
        return S(to_status) in TRANSITIONS[S(from_status)]

    def transition(self, installment, to_status, paid_amount=None, paid_date: date | None = None) -> None:
        """
        Move `installment` to `to_status`.

        Entering paid/partial sets the payment fields; entering any other
        status clears them, except overdue which keeps an earlier partial
        payment.
        """
        from_status = S(installment.status)
        to_status = S(to_status)

        if from_status in TERMINAL_STATUSES:
            raise InvalidTransitionError(from_status.value, to_status.value, f"{from_status.value} is terminal")
        if not self.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status.value, to_status.value)

        if to_status in (S.PAID, S.PARTIAL):
            new_paid_amount = quantize_money(to_decimal(paid_amount)) if paid_amount is not None else None
            new_paid_date = paid_date
        elif to_status == S.OVERDUE and from_status == S.PARTIAL:
            new_paid_amount = installment.paid_amount
            new_paid_date = installment.paid_date
        else:
            new_paid_amount = None
            new_paid_date = None

        problem = payment_fields_problem(to_status, installment.amount, new_paid_amount, new_paid_date)
        if problem:
            raise InvalidTransitionError(from_status.value, to_status.value, problem)

        installment.status = to_status
        installment.paid_amount = new_paid_amount
        installment.paid_date = new_paid_date
        if new_paid_amount is None:
            installment.payment_notes = None

    def activate(self, installment) -> None:
        """draft -> pending, once the plan is confirmed."""
        self.transition(installment, S.PENDING)

    def record_payment(self, installment, paid_amount, paid_date: date, notes: str | None = None) -> InstallmentStatus:
        """
        Record money received for an installment.

        Status becomes paid when paid_amount covers the installment amount,
        partial otherwise. Payments above amount * overpayment_tolerance are
        rejected.
        """
        paid_amount = to_decimal(paid_amount)
        amount = to_decimal(installment.amount)

        max_allowed = quantize_money(amount * self.config.overpayment_tolerance)
        if paid_amount > max_allowed:
            raise DomainValidationError(
                f"Payment amount cannot exceed {max_allowed} "
                f"({self.config.overpayment_tolerance * 100:.0f}% of installment amount)"
            )

        new_status = S.PAID if paid_amount >= amount else S.PARTIAL
        self.transition(installment, new_status, paid_amount=paid_amount, paid_date=paid_date)
        installment.payment_notes = notes

        logger.info(f"Recorded payment of {fmt(paid_amount)} against {fmt(amount)} installment: {new_status.value}")
        return new_status

    def mark_overdue(self, installment) -> None:
        self.transition(installment, S.OVERDUE)

    def cancel(self, installment) -> None:
        self.transition(installment, S.CANCELLED)

    def reverse_payment(self, installment) -> None:
        """Undo a recorded payment: paid/partial -> pending with payment fields cleared."""
        from_status = S(installment.status)
        if from_status not in REVERSIBLE_STATUSES:
            raise InvalidTransitionError(from_status.value, S.PENDING.value, "no recorded payment to reverse")

        installment.status = S.PENDING
        installment.paid_amount = None
        installment.paid_date = None
        installment.payment_notes = None

    @staticmethod
    def verify(installment) -> None:
        """Raise ConsistencyError if the stored payment fields contradict the status."""
        problem = payment_fields_problem(
            installment.status, installment.amount, installment.paid_amount, installment.paid_date
        )
        if problem:
            raise ConsistencyError(
                f"Installment #{installment.installment_number} is inconsistent: {problem}"
            )
