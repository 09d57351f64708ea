"""
Expected Commission Calculator

Converts a commissionable value into the commission the agency expects to
earn, handling GST-inclusive and GST-exclusive figures.
"""

from decimal import Decimal

from ..config import DEFAULT_CONFIG, EngineConfig
from ..money import ZERO, quantize_money, to_decimal

HUNDRED = Decimal('100')


def normalize_rate(value) -> Decimal:
    """
    Reconcile the two rate forms to a decimal fraction.

    Rates above 1 are percentages (15 -> 0.15); rates in [0, 1] are
    already fractions. Null becomes zero.
    """
    rate = to_decimal(value)
    if rate > 1:
        return rate / HUNDRED
    return rate


class ExpectedCommissionCalculator:
    """Calculates expected commission with GST handling."""

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config

    def calculate(self, commissionable_value, rate, gst_inclusive: bool = True) -> Decimal:
        """
        Calculate expected commission.

        GST inclusive:  base = commissionable_value
        GST exclusive:  base = commissionable_value / (1 + gst_rate)

        Result is base * rate, rounded half-up to the cent. Null or negative
        inputs return zero since this also runs while the user is typing.
        """
        if commissionable_value is None or rate is None:
            return ZERO

        value = to_decimal(commissionable_value)
        rate = to_decimal(rate)
        if value < 0 or rate < 0:
            return ZERO

        base = self.commission_base(value, gst_inclusive)
        return quantize_money(base * rate)

    def commission_base(self, commissionable_value: Decimal, gst_inclusive: bool) -> Decimal:
        if gst_inclusive:
            return commissionable_value
        return commissionable_value / self.config.gst_divisor

    def from_percent(self, total_amount, rate_percent) -> Decimal:
        """Legacy form: total * (percent / 100) with no fee or GST handling."""
        if total_amount is None or rate_percent is None:
            return ZERO

        total = to_decimal(total_amount)
        percent = to_decimal(rate_percent)
        if total < 0 or percent < 0:
            return ZERO

        return quantize_money(total * percent / HUNDRED)
