"""
Installment Preview Builder - Main Orchestrator

Coordinates installment generation for the payment plan wizard through
discrete, testable steps. Performs no I/O; the preview is discarded unless
the user confirms it.
"""

import logging
from typing import Any, Dict

from .calculators import (
    AmountAllocator,
    CommissionableValueCalculator,
    DueDateScheduler,
    ExpectedCommissionCalculator,
)
from .config import DEFAULT_CONFIG, EngineConfig
from .exceptions import DomainValidationError
from .models import (
    InstallmentPreview,
    InstallmentsSummary,
    InstallmentStatus,
    PaymentFrequency,
    PreviewRequest,
    PreviewResult,
)
from .money import fmt, quantize_money
from .output import OutputBuilder
from .validators import InputValidator

logger = logging.getLogger(__name__)


class InstallmentPreviewBuilder:
    """
    Main orchestrator for installment preview generation.

    Implements a clear pipeline pattern:
    1. Validate Input
    2. Calculate Commissionable Value
    3. Calculate Expected Commission
    4. Check Remaining Balance
    5. Emit Initial Payment
    6. Emit Regular Installments
    7. Build Summary
    """

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config
        self.validator = InputValidator(config)
        self.commissionable_calculator = CommissionableValueCalculator()
        self.commission_calculator = ExpectedCommissionCalculator(config)
        self.scheduler = DueDateScheduler()
        self.allocator = AmountAllocator()
        self.output_builder = OutputBuilder()

    def build(self, request: PreviewRequest) -> PreviewResult:
        """
        Generate a draft installment schedule.

        Args:
            request: Structurally valid PreviewRequest

        Returns:
            PreviewResult with installments and summary

        Raises:
            DomainValidationError: initial payment exceeds commissionable value
        """
        # Steps 2-3: commission figures
        commissionable_value = self.commissionable_calculator.calculate(
            request.total_course_value,
            request.materials_cost,
            request.admin_fees,
            request.other_fees,
        )
        expected_commission = self.commission_calculator.calculate(
            commissionable_value,
            request.commission_rate,
            request.gst_inclusive,
        )

        # Step 4: remaining balance after the initial payment
        initial_amount = quantize_money(request.initial_payment_amount)
        remaining = commissionable_value - initial_amount
        if remaining < 0:
            logger.info(
                f"Rejected preview: initial payment {fmt(initial_amount)} "
                f"exceeds commissionable value {fmt(commissionable_value)}"
            )
            raise DomainValidationError("Initial payment amount cannot exceed commissionable value")

        # Every regular installment must carry at least one cent
        if self.allocator.base_amount(remaining, request.number_of_installments) <= 0:
            raise DomainValidationError(
                f"Remaining balance of {fmt(remaining)} is too small to split into "
                f"{request.number_of_installments} installments"
            )

        installments: list[InstallmentPreview] = []

        # Step 5: initial payment
        if request.has_initial_payment:
            installments.append(self._build_initial_payment(request, initial_amount))

        # Step 6: regular installments
        installments.extend(self._build_regular_installments(request, remaining))

        # Step 7: summary
        summary = InstallmentsSummary(
            total_course_value=quantize_money(request.total_course_value),
            commissionable_value=commissionable_value,
            expected_commission=expected_commission,
            initial_payment=initial_amount,
            total_installments=request.number_of_installments + (1 if request.has_initial_payment else 0),
            amount_per_installment=self.allocator.base_amount(remaining, request.number_of_installments),
        )

        return PreviewResult(installments=installments, summary=summary)

    def build_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Generate a preview from raw dictionary input.

        Convenience method for API usage.
        """
        request = self.validator.parse_preview_request(data)
        result = self.build(request)
        return self.output_builder.build_preview(result)

    def _build_initial_payment(self, request: PreviewRequest, amount) -> InstallmentPreview:
        """Deposit is due to student and college on the same day; no lead time."""
        due_date = request.initial_payment_due_date
        return InstallmentPreview(
            installment_number=0,
            amount=amount,
            student_due_date=due_date,
            college_due_date=due_date,
            is_initial_payment=True,
            generates_commission=True,
            status=InstallmentStatus.PAID if request.initial_payment_paid else InstallmentStatus.DRAFT,
        )

    def _build_regular_installments(self, request: PreviewRequest, remaining) -> list[InstallmentPreview]:
        count = request.number_of_installments
        amounts = self.allocator.allocate(remaining, count)

        if request.payment_frequency == PaymentFrequency.CUSTOM:
            college_dates = [None] * count
        else:
            college_dates = self.scheduler.generate(
                request.first_college_due_date, count, request.payment_frequency
            )
        student_dates = self.scheduler.student_due_dates(college_dates, request.student_lead_time_days)

        return [
            InstallmentPreview(
                installment_number=number,
                amount=amount,
                student_due_date=student_date,
                college_due_date=college_date,
                is_initial_payment=False,
                generates_commission=True,
                status=InstallmentStatus.DRAFT,
            )
            for number, (amount, college_date, student_date) in enumerate(
                zip(amounts, college_dates, student_dates), start=1
            )
        ]


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def generate_installments_from_dict(input_data: Dict[str, Any]) -> Dict[str, Any]:
    """Generate a preview from a Python dict and return a Python dict."""
    builder = InstallmentPreviewBuilder()
    return builder.build_from_dict(input_data)


def generate_installments_from_json(json_input: str) -> str:
    """
    Generate a preview from a JSON string and return a JSON string.
    Errors are rendered as JSON rather than raised.
    """
    import json

    try:
        input_data = json.loads(json_input)
        builder = InstallmentPreviewBuilder()
        result = builder.build_from_dict(input_data)
        return json.dumps(result, indent=2)

    except ValueError as e:
        error_response = OutputBuilder.build_error(e)
        return json.dumps(error_response, indent=2)
