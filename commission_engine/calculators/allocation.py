"""
Amount Allocator

Splits a balance across N installments so the parts add back up to the
balance exactly, cent for cent.
"""

from decimal import Decimal

from ..money import floor_to_cent, quantize_money, to_decimal


class AmountAllocator:
    """Floor-then-remainder distribution of a balance."""

    @staticmethod
    def base_amount(remaining, count: int) -> Decimal:
        """Per-installment amount floored to the cent."""
        return floor_to_cent(to_decimal(remaining) / Decimal(count))

    def allocate(self, remaining, count: int) -> list[Decimal]:
        """
        Allocate `remaining` across `count` installments.

        The first count-1 slots get the floored base amount; the final slot
        gets base + leftover cents. Example: 100.00 / 3 -> 33.33, 33.33, 33.34.

        A negative balance is the caller's business-rule failure (initial
        payment too large) and is rejected here as a precondition.
        """
        remaining = quantize_money(to_decimal(remaining))
        if remaining < 0:
            raise ValueError(f"Cannot allocate a negative balance: {remaining}")
        if count < 1:
            raise ValueError(f"Installment count must be positive, got: {count}")

        base = self.base_amount(remaining, count)
        remainder = remaining - base * count

        amounts = [base] * (count - 1)
        amounts.append(base + remainder)
        return amounts
