"""
Domain Models for the Commission & Installment Engine

These dataclasses provide type-safe representations of the preview
request, the generated installment schedule and its summary.
All monetary values use Decimal for precision.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

# =============================================================================
# ENUMERATIONS
# =============================================================================


class PaymentFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    CUSTOM = "custom"


class InstallmentStatus(str, Enum):
    """Installment lifecycle states."""

    DRAFT = "draft"
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PlanStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses whose paid_amount counts toward earned commission
COMMISSION_EARNING_STATUSES = frozenset({InstallmentStatus.PAID, InstallmentStatus.PARTIAL})


# =============================================================================
# INPUT MODELS
# =============================================================================


@dataclass
class PreviewRequest:
    """Wizard parameters for generating an installment preview."""

    total_course_value: Decimal
    commission_rate: Decimal  # decimal fraction, 0-1
    gst_inclusive: bool
    number_of_installments: int
    payment_frequency: PaymentFrequency
    first_college_due_date: date
    student_lead_time_days: int = 0
    initial_payment_amount: Decimal = Decimal("0")
    initial_payment_due_date: date | None = None
    initial_payment_paid: bool = False
    materials_cost: Decimal = Decimal("0")
    admin_fees: Decimal = Decimal("0")
    other_fees: Decimal = Decimal("0")

    @property
    def has_initial_payment(self) -> bool:
        return self.initial_payment_amount > 0


@dataclass
class PaymentRecording:
    """A payment received against a single installment."""

    paid_date: date
    paid_amount: Decimal
    notes: str | None = None


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass
class InstallmentPreview:
    """A draft installment. Due dates are None when entered manually (custom frequency)."""

    installment_number: int
    amount: Decimal
    student_due_date: date | None
    college_due_date: date | None
    is_initial_payment: bool = False
    generates_commission: bool = True
    status: InstallmentStatus = InstallmentStatus.DRAFT


@dataclass
class InstallmentsSummary:
    total_course_value: Decimal = Decimal("0")
    commissionable_value: Decimal = Decimal("0")
    expected_commission: Decimal = Decimal("0")
    initial_payment: Decimal = Decimal("0")
    total_installments: int = 0
    amount_per_installment: Decimal = Decimal("0")


@dataclass
class PreviewResult:
    """Final output of installment preview generation."""

    installments: list[InstallmentPreview] = field(default_factory=list)
    summary: InstallmentsSummary = field(default_factory=InstallmentsSummary)

    @property
    def regular_installments(self) -> list[InstallmentPreview]:
        return [i for i in self.installments if not i.is_initial_payment]

    @property
    def initial_installment(self) -> InstallmentPreview | None:
        for installment in self.installments:
            if installment.is_initial_payment:
                return installment
        return None


@dataclass
class CommissionFigures:
    """Derived commission fields of a payment plan."""

    commissionable_value: Decimal = Decimal("0")
    expected_commission: Decimal = Decimal("0")
    earned_commission: Decimal = Decimal("0")
