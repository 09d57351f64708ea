"""
Commissionable Value Calculator

Strips non-commissionable fees from the total course value.
"""

from decimal import Decimal

from ..money import ZERO, quantize_money, to_decimal


class CommissionableValueCalculator:
    """Calculates the commission-eligible base of a course."""

    def calculate(self, total, materials=None, admin=None, other=None) -> Decimal:
        """
        commissionable_value = max(total - materials - admin - other, 0)

        Absent fees count as zero. Fees larger than the total clamp the
        result to zero rather than raising, so half-filled wizard forms
        still render.
        """
        value = to_decimal(total) - to_decimal(materials) - to_decimal(admin) - to_decimal(other)
        return quantize_money(max(ZERO, value))
