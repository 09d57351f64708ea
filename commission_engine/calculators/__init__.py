"""
Calculators Package

Provides all calculation components for commission and installment planning.
"""

from .allocation import AmountAllocator
from .commission import ExpectedCommissionCalculator, normalize_rate
from .commissionable import CommissionableValueCalculator
from .earned import EarnedCommissionCalculator
from .schedule import DueDateScheduler

__all__ = [
    "CommissionableValueCalculator",
    "ExpectedCommissionCalculator",
    "EarnedCommissionCalculator",
    "DueDateScheduler",
    "AmountAllocator",
    "normalize_rate",
]
