"""
Earned Commission Calculator

Recognises commission proportionally as installment payments come in.
"""

from decimal import Decimal
from typing import Iterable

from ..models import COMMISSION_EARNING_STATUSES, InstallmentStatus
from ..money import ZERO, quantize_money, to_decimal


class EarnedCommissionCalculator:
    """Calculates the portion of expected commission already earned."""

    def calculate(self, paid_amount_sum, total_amount, expected_commission) -> Decimal:
        """
        earned = (paid_amount_sum / total_amount) * expected_commission

        Rounded half-up to the cent, then clamped to [0, expected_commission]
        so overpayments never recognise more than the plan can earn.
        A zero or missing total returns zero.
        """
        total = to_decimal(total_amount)
        expected = to_decimal(expected_commission)
        paid = to_decimal(paid_amount_sum)

        if total <= 0 or expected <= 0 or paid <= 0:
            return ZERO

        earned = quantize_money((paid / total) * expected)
        return min(earned, quantize_money(expected))

    @staticmethod
    def paid_amount_sum(installments: Iterable) -> Decimal:
        """Sum paid_amount across installments in a commission-earning status."""
        total = ZERO
        for installment in installments:
            if InstallmentStatus(installment.status) not in COMMISSION_EARNING_STATUSES:
                continue
            if installment.paid_amount is None:
                continue
            total += to_decimal(installment.paid_amount)
        return total
