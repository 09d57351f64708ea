"""
Unit Tests for AmountAllocator

Tests verify the floor-then-remainder split sums back to the balance.
"""

import pytest
from decimal import Decimal

from commission_engine.calculators import AmountAllocator


@pytest.fixture
def allocator():
    return AmountAllocator()


class TestAllocation:
    """Floor-then-remainder distribution."""

    def test_remainder_goes_to_last(self, allocator):
        assert allocator.allocate(Decimal('1000'), 3) == [
            Decimal('333.33'), Decimal('333.33'), Decimal('333.34'),
        ]

    def test_even_split(self, allocator):
        assert allocator.allocate(Decimal('900'), 3) == [Decimal('300.00')] * 3

    def test_single_installment_gets_everything(self, allocator):
        assert allocator.allocate(Decimal('8000.00'), 1) == [Decimal('8000.00')]

    def test_remainder_larger_than_one_cent(self, allocator):
        """8000 / 11 = 727.2727... -> ten of 727.27 and a final 727.30"""
        amounts = allocator.allocate(Decimal('8000.00'), 11)
        assert amounts[:-1] == [Decimal('727.27')] * 10
        assert amounts[-1] == Decimal('727.30')

    def test_base_amount_is_floored(self, allocator):
        assert allocator.base_amount(Decimal('100'), 3) == Decimal('33.33')
        assert allocator.base_amount(Decimal('200'), 3) == Decimal('66.66')

    def test_float_input(self, allocator):
        assert sum(allocator.allocate(1234.56, 7)) == Decimal('1234.56')

    def test_sum_always_matches_balance(self, allocator):
        for balance in ('1000.00', '9999.99', '0.01', '123456.78', '7.77', '33.33'):
            remaining = Decimal(balance)
            for count in range(1, 61):
                amounts = allocator.allocate(remaining, count)
                assert len(amounts) == count
                assert sum(amounts) == remaining
                assert amounts[-1] >= amounts[0]
                assert all(a >= 0 for a in amounts)
                assert all(a == a.quantize(Decimal('0.01')) for a in amounts)

    def test_negative_balance_raises(self, allocator):
        with pytest.raises(ValueError, match="negative"):
            allocator.allocate(Decimal('-0.01'), 3)

    def test_zero_count_raises(self, allocator):
        with pytest.raises(ValueError, match="positive"):
            allocator.allocate(Decimal('100'), 0)
