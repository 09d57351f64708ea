"""
Unit Tests for Commission Calculators

Tests verify commissionable value, GST-aware expected commission and
proportional earned commission.
"""

import pytest
from decimal import Decimal
from types import SimpleNamespace

from commission_engine.calculators import (
    CommissionableValueCalculator,
    EarnedCommissionCalculator,
    ExpectedCommissionCalculator,
    normalize_rate,
)
from commission_engine.config import EngineConfig


class TestCommissionableValue:
    """Total course value minus non-commissionable fees."""

    @pytest.fixture
    def calculator(self):
        return CommissionableValueCalculator()

    def test_subtracts_all_fees(self, calculator):
        result = calculator.calculate(10000, 500, 300, 200)
        assert result == Decimal('9000.00')

    def test_missing_fees_count_as_zero(self, calculator):
        assert calculator.calculate(10000, None, None, None) == Decimal('10000.00')
        assert calculator.calculate(10000) == Decimal('10000.00')

    def test_fees_exceeding_total_clamp_to_zero(self, calculator):
        """Silently clamps rather than raising."""
        assert calculator.calculate(1000, 800, 300, 0) == Decimal('0.00')

    def test_float_inputs_do_not_drift(self, calculator):
        # 0.1 + 0.2 style drift would leave 9999.699999...
        assert calculator.calculate(10000.0, 0.1, 0.2, 0) == Decimal('9999.70')


class TestExpectedCommission:
    """GST-aware expected commission."""

    @pytest.fixture
    def calculator(self):
        return ExpectedCommissionCalculator()

    def test_gst_inclusive_uses_full_value(self, calculator):
        assert calculator.calculate(Decimal('10000'), Decimal('0.15'), True) == Decimal('1500.00')

    def test_gst_exclusive_removes_ten_percent_gst(self, calculator):
        """9200 / 1.10 * 0.15 = 1254.5454... -> 1254.55"""
        assert calculator.calculate(Decimal('9200.00'), Decimal('0.15'), False) == Decimal('1254.55')

    def test_inclusive_matches_rounded_product(self, calculator):
        for value, rate in [
            ('5678.90', '0.1234'),
            ('25750.50', '0.18'),
            ('33.33', '0.10'),
            ('0', '0.5'),
            ('1', '1'),
        ]:
            expected = (Decimal(value) * Decimal(rate)).quantize(Decimal('0.01'), rounding='ROUND_HALF_UP')
            assert calculator.calculate(Decimal(value), Decimal(rate), True) == expected

    def test_rounds_half_up(self, calculator):
        """1.25 * 0.1 = 0.125 rounds to 0.13 (banker's rounding would give 0.12)."""
        assert calculator.calculate(Decimal('1.25'), Decimal('0.1'), True) == Decimal('0.13')

    def test_zero_rate_is_zero_commission(self, calculator):
        assert calculator.calculate(Decimal('10000'), Decimal('0'), True) == Decimal('0.00')

    def test_null_inputs_return_zero(self, calculator):
        assert calculator.calculate(None, Decimal('0.15'), True) == Decimal('0')
        assert calculator.calculate(Decimal('10000'), None, True) == Decimal('0')

    def test_negative_inputs_return_zero(self, calculator):
        assert calculator.calculate(Decimal('-1000'), Decimal('0.15'), True) == Decimal('0')
        assert calculator.calculate(Decimal('1000'), Decimal('-0.15'), False) == Decimal('0')

    def test_gst_rate_comes_from_config(self):
        """A 15% GST jurisdiction: 1150 exclusive -> base 1000."""
        calculator = ExpectedCommissionCalculator(EngineConfig(gst_rate=Decimal('0.15')))
        assert calculator.calculate(Decimal('1150'), Decimal('0.10'), False) == Decimal('100.00')

    def test_from_percent_legacy_form(self, calculator):
        assert calculator.from_percent(10000, 15) == Decimal('1500.00')
        assert calculator.from_percent(25750.5, 18) == Decimal('4635.09')
        assert calculator.from_percent(12500, 12.5) == Decimal('1562.50')

    def test_from_percent_edge_cases(self, calculator):
        assert calculator.from_percent(None, 15) == Decimal('0')
        assert calculator.from_percent(10000, None) == Decimal('0')
        assert calculator.from_percent(-1000, 15) == Decimal('0')
        assert calculator.from_percent(1000, -5) == Decimal('0')


class TestRateNormalization:
    """0-100 and 0-1 rate forms reconcile to the same decimal."""

    def test_percentage_becomes_fraction(self):
        assert normalize_rate(15) == Decimal('0.15')
        assert normalize_rate('12.5') == Decimal('0.125')

    def test_fraction_is_unchanged(self):
        assert normalize_rate(Decimal('0.15')) == Decimal('0.15')
        assert normalize_rate(0.15) == Decimal('0.15')

    def test_both_forms_give_same_commission(self):
        calculator = ExpectedCommissionCalculator()
        from_percent = calculator.calculate(Decimal('9200'), normalize_rate(15), False)
        from_fraction = calculator.calculate(Decimal('9200'), normalize_rate(0.15), False)
        assert from_percent == from_fraction == Decimal('1254.55')

    def test_null_is_zero(self):
        assert normalize_rate(None) == Decimal('0')


class TestEarnedCommission:
    """Commission recognised in proportion to payments received."""

    @pytest.fixture
    def calculator(self):
        return EarnedCommissionCalculator()

    def test_proportional_to_paid_share(self, calculator):
        assert calculator.calculate(Decimal('5000'), Decimal('10000'), Decimal('1500')) == Decimal('750.00')

    def test_rounds_to_cent(self, calculator):
        assert calculator.calculate(Decimal('1000'), Decimal('3000'), Decimal('100')) == Decimal('33.33')
        assert calculator.calculate(Decimal('2000'), Decimal('3000'), Decimal('100')) == Decimal('66.67')

    def test_zero_total_returns_zero(self, calculator):
        assert calculator.calculate(Decimal('500'), Decimal('0'), Decimal('1500')) == Decimal('0')
        assert calculator.calculate(Decimal('500'), None, Decimal('1500')) == Decimal('0')

    def test_nothing_paid_is_zero(self, calculator):
        assert calculator.calculate(Decimal('0'), Decimal('10000'), Decimal('1500')) == Decimal('0')

    def test_overpayment_is_clamped_to_expected(self, calculator):
        assert calculator.calculate(Decimal('11000'), Decimal('10000'), Decimal('1500')) == Decimal('1500.00')

    def test_fully_paid_earns_everything(self, calculator):
        assert calculator.calculate(Decimal('10000'), Decimal('10000'), Decimal('1350')) == Decimal('1350.00')

    def test_paid_sum_counts_paid_and_partial_only(self, calculator):
        installments = [
            SimpleNamespace(status='paid', paid_amount=Decimal('100.00')),
            SimpleNamespace(status='partial', paid_amount=Decimal('50.00')),
            SimpleNamespace(status='pending', paid_amount=None),
            SimpleNamespace(status='overdue', paid_amount=Decimal('30.00')),
            SimpleNamespace(status='cancelled', paid_amount=None),
        ]
        assert calculator.paid_amount_sum(installments) == Decimal('150.00')

    def test_recalculation_is_stable(self, calculator):
        first = calculator.calculate(Decimal('1727.27'), Decimal('10000'), Decimal('1350'))
        second = calculator.calculate(Decimal('1727.27'), Decimal('10000'), Decimal('1350'))
        assert first == second == Decimal('233.18')
