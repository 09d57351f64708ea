"""
Persisted Recalculation Service

Keeps a payment plan's derived commission fields consistent with its
inputs and its installments. Every mutation runs in a single transaction
together with the recalculation it triggers, under a row lock on the
payment plan: either both are committed or neither is.

Derived fields:
    commissionable_value = max(total - materials - admin - other, 0)
    expected_commission  = GST-aware base * rate
    earned_commission    = paid_sum / total * expected_commission
"""

import logging
from contextlib import contextmanager
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..calculators import (
    CommissionableValueCalculator,
    EarnedCommissionCalculator,
    ExpectedCommissionCalculator,
    normalize_rate,
)
from ..config import DEFAULT_CONFIG, EngineConfig
from ..exceptions import ConsistencyError, FieldError, NotFoundError, StructuralValidationError
from ..lifecycle import InstallmentLifecycle
from ..models import (
    CommissionFigures,
    InstallmentStatus,
    PaymentRecording,
    PlanStatus,
    PreviewRequest,
    PreviewResult,
)
from ..money import MAX_MONEY, fmt, quantize_money
from ..preview import InstallmentPreviewBuilder
from .tables import Installment, PaymentPlan

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
# commission_rate_percent is NUMERIC(7, 4)
PERCENT_PLACES = Decimal("0.0001")

# Plan fields whose change re-triggers the commission calculation
FINANCIAL_FIELDS = frozenset({
    "total_amount",
    "materials_cost",
    "admin_fees",
    "other_fees",
    "commission_rate",
    "commission_rate_percent",
    "gst_inclusive",
})


class RecalculationService:
    """Application-layer replacement for the payment plan commission triggers."""

    def __init__(self, session_factory: sessionmaker, config: EngineConfig = DEFAULT_CONFIG):
        self.session_factory = session_factory
        self.config = config
        self.commissionable_calculator = CommissionableValueCalculator()
        self.commission_calculator = ExpectedCommissionCalculator(config)
        self.earned_calculator = EarnedCommissionCalculator()
        self.lifecycle = InstallmentLifecycle(config)
        self.preview_builder = InstallmentPreviewBuilder(config)

    # =========================================================================
    # CORE RECALCULATION
    # =========================================================================

    def recalculate(self, session: Session, plan: PaymentPlan) -> CommissionFigures:
        """
        Recompute and write the derived fields of `plan`.

        Must run inside the caller's transaction. Raises ConsistencyError when
        the plan's inputs or installments can't produce a consistent result;
        the caller's transaction is then rolled back.
        """
        self._check_inputs(plan)
        for installment in plan.installments:
            self.lifecycle.verify(installment)

        commissionable_value = self.commissionable_calculator.calculate(
            plan.total_amount, plan.materials_cost, plan.admin_fees, plan.other_fees
        )
        expected_commission = self.commission_calculator.calculate(
            commissionable_value, plan.commission_rate, plan.gst_inclusive
        )
        paid_sum = self.earned_calculator.paid_amount_sum(plan.installments)
        earned_commission = self.earned_calculator.calculate(
            paid_sum, plan.total_amount, expected_commission
        )

        plan.commissionable_value = commissionable_value
        plan.expected_commission = expected_commission
        plan.earned_commission = earned_commission
        session.flush()

        logger.info(
            f"Recalculated plan {plan.id}: commissionable={fmt(commissionable_value)} "
            f"expected={fmt(expected_commission)} earned={fmt(earned_commission)}"
        )
        return CommissionFigures(
            commissionable_value=commissionable_value,
            expected_commission=expected_commission,
            earned_commission=earned_commission,
        )

    def _check_inputs(self, plan: PaymentPlan) -> None:
        problems = []
        if plan.total_amount is None or plan.total_amount < 0:
            problems.append(f"total_amount must be non-negative, got: {plan.total_amount}")
        for name in ("materials_cost", "admin_fees", "other_fees"):
            value = getattr(plan, name)
            if value is not None and value < 0:
                problems.append(f"{name} cannot be negative, got: {value}")
        rate = plan.commission_rate_percent
        if rate is None or not (0 <= rate <= HUNDRED):
            problems.append(f"commission_rate_percent must be between 0 and 100, got: {rate}")
        if problems:
            raise ConsistencyError(f"Cannot recalculate plan {plan.id}: " + "; ".join(problems))

    # =========================================================================
    # TRANSACTIONAL OPERATIONS
    # =========================================================================

    @contextmanager
    def transaction(self):
        """Session whose work commits on success and rolls back on any error."""
        try:
            with self.session_factory.begin() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Transaction rolled back: {str(e)}")
            raise ConsistencyError(f"Payment plan update could not be committed: {e}") from e

    def lock_plan(self, session: Session, plan_id: int) -> PaymentPlan:
        """Load a plan with SELECT ... FOR UPDATE."""
        plan = session.execute(
            select(PaymentPlan).where(PaymentPlan.id == plan_id).with_for_update()
        ).scalar_one_or_none()
        if plan is None:
            raise NotFoundError(f"Payment plan {plan_id} not found")
        return plan

    def _lock_installment(self, session: Session, installment_id: int) -> tuple[Installment, PaymentPlan]:
        plan_id = session.execute(
            select(Installment.payment_plan_id).where(Installment.id == installment_id)
        ).scalar_one_or_none()
        if plan_id is None:
            raise NotFoundError(f"Installment {installment_id} not found")

        # Plan row first so concurrent payments on one plan serialize
        plan = self.lock_plan(session, plan_id)
        installment = session.execute(
            select(Installment).where(Installment.id == installment_id).with_for_update()
        ).scalar_one()
        return installment, plan

    def create_plan(
        self,
        request: PreviewRequest,
        preview: PreviewResult | None = None,
        currency: str | None = None,
    ) -> PaymentPlan:
        """
        Persist a confirmed plan and its installments.

        Regular installments start pending. A paid initial payment is stored
        as paid with paid_amount = amount and paid_date = its due date.
        """
        if preview is None:
            preview = self.preview_builder.build(request)

        with self.transaction() as session:
            plan = PaymentPlan(
                status=PlanStatus.ACTIVE,
                currency=currency or self.config.default_currency,
                total_amount=quantize_money(request.total_course_value),
                commission_rate_percent=self._percent(request.commission_rate * HUNDRED),
                gst_inclusive=request.gst_inclusive,
                materials_cost=quantize_money(request.materials_cost),
                admin_fees=quantize_money(request.admin_fees),
                other_fees=quantize_money(request.other_fees),
                initial_payment_amount=quantize_money(request.initial_payment_amount),
                initial_payment_due_date=request.initial_payment_due_date,
                initial_payment_paid=request.initial_payment_paid,
                first_college_due_date=request.first_college_due_date,
                student_lead_time_days=request.student_lead_time_days,
                number_of_installments=request.number_of_installments,
                payment_frequency=request.payment_frequency,
                earned_commission=Decimal("0"),
            )

            for item in preview.installments:
                installment = Installment(
                    installment_number=item.installment_number,
                    is_initial_payment=item.is_initial_payment,
                    amount=item.amount,
                    generates_commission=item.generates_commission,
                    student_due_date=item.student_due_date,
                    college_due_date=item.college_due_date,
                    status=InstallmentStatus.PENDING,
                )
                if item.status == InstallmentStatus.PAID:
                    installment.status = InstallmentStatus.PAID
                    installment.paid_amount = item.amount
                    installment.paid_date = item.college_due_date
                plan.installments.append(installment)

            session.add(plan)
            session.flush()
            self.recalculate(session, plan)
            self._sync_plan_status(plan)

        logger.info(f"Created payment plan {plan.id} with {len(plan.installments)} installments")
        return plan

    def update_plan(self, plan_id: int, changes: dict) -> PaymentPlan:
        """Apply changes to a plan's financial fields and recalculate in the same transaction."""
        unknown = sorted(set(changes) - FINANCIAL_FIELDS - {"currency"})
        if unknown:
            raise StructuralValidationError(
                [FieldError(name, f"{name} cannot be updated") for name in unknown]
            )

        with self.transaction() as session:
            plan = self.lock_plan(session, plan_id)
            for name, value in changes.items():
                self._apply_change(plan, name, value)
            self.recalculate(session, plan)

        logger.info(f"Updated payment plan {plan_id}: {', '.join(sorted(changes))}")
        return plan

    def _apply_change(self, plan: PaymentPlan, name: str, value) -> None:
        if name == "currency":
            plan.currency = value
        elif name == "gst_inclusive":
            if not isinstance(value, bool):
                raise ConsistencyError(f"gst_inclusive must be a boolean, got: {value!r}")
            plan.gst_inclusive = value
        elif name == "commission_rate":
            # Either form accepted; 0.15 and 15 both mean 15%
            rate = normalize_rate(self._strict_decimal(name, value))
            plan.commission_rate_percent = self._percent(rate * HUNDRED)
        elif name == "commission_rate_percent":
            plan.commission_rate_percent = self._percent(self._strict_decimal(name, value))
        else:
            setattr(plan, name, quantize_money(self._strict_decimal(name, value)))

    @staticmethod
    def _strict_decimal(name: str, value) -> Decimal:
        if value is None or isinstance(value, bool):
            raise ConsistencyError(f"{name} must be a number, got: {value!r}")
        try:
            number = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ConsistencyError(f"{name} must be a number, got: {value!r}")
        if not number.is_finite():
            raise ConsistencyError(f"{name} must be a finite number, got: {value!r}")
        if abs(number) > MAX_MONEY:
            raise ConsistencyError(f"{name} must be at most {MAX_MONEY}, got: {value!r}")
        return number

    @staticmethod
    def _percent(value: Decimal) -> Decimal:
        """Round a percentage to the 4 decimal places the column stores."""
        return value.quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)

    def recalculate_plan(self, plan_id: int) -> CommissionFigures:
        """Standalone recalculation; re-running it with unchanged inputs changes nothing."""
        with self.transaction() as session:
            plan = self.lock_plan(session, plan_id)
            return self.recalculate(session, plan)

    def record_payment(self, installment_id: int, recording: PaymentRecording) -> tuple[Installment, PaymentPlan]:
        """
        Record a payment and refresh earned commission.

        The plan is marked completed once every non-cancelled installment
        is paid.
        """
        with self.transaction() as session:
            installment, plan = self._lock_installment(session, installment_id)
            self.lifecycle.record_payment(
                installment, recording.paid_amount, recording.paid_date, recording.notes
            )
            self.recalculate(session, plan)
            self._sync_plan_status(plan)

        logger.info(
            f"Recorded payment on installment {installment_id} (plan {plan.id}): "
            f"{installment.status.value}, earned commission {fmt(plan.earned_commission)}"
        )
        return installment, plan

    def reverse_payment(self, installment_id: int) -> tuple[Installment, PaymentPlan]:
        with self.transaction() as session:
            installment, plan = self._lock_installment(session, installment_id)
            self.lifecycle.reverse_payment(installment)
            self.recalculate(session, plan)
            self._sync_plan_status(plan)

        logger.info(f"Reversed payment on installment {installment_id} (plan {plan.id})")
        return installment, plan

    def cancel_installment(self, installment_id: int) -> tuple[Installment, PaymentPlan]:
        with self.transaction() as session:
            installment, plan = self._lock_installment(session, installment_id)
            self.lifecycle.cancel(installment)
            self.recalculate(session, plan)
            self._sync_plan_status(plan)

        logger.info(f"Cancelled installment {installment_id} (plan {plan.id})")
        return installment, plan

    def mark_overdue(self, today: date | None = None) -> int:
        """
        Move pending installments of active plans past their student due date
        to overdue. Returns the number of installments updated.
        """
        today = today or date.today()
        updated = 0

        with self.transaction() as session:
            plan_ids = session.execute(
                select(Installment.payment_plan_id)
                .join(PaymentPlan)
                .where(
                    PaymentPlan.status == PlanStatus.ACTIVE,
                    Installment.status == InstallmentStatus.PENDING,
                    Installment.student_due_date < today,
                )
                .distinct()
                .order_by(Installment.payment_plan_id)
            ).scalars().all()

            for plan_id in plan_ids:
                plan = self.lock_plan(session, plan_id)
                for installment in plan.installments:
                    if (
                        installment.status == InstallmentStatus.PENDING
                        and installment.student_due_date is not None
                        and installment.student_due_date < today
                    ):
                        self.lifecycle.mark_overdue(installment)
                        updated += 1
                self.recalculate(session, plan)

        logger.info(f"Marked {updated} installments overdue across {len(plan_ids)} plans")
        return updated

    def get_plan(self, plan_id: int) -> PaymentPlan:
        with self.transaction() as session:
            plan = session.get(PaymentPlan, plan_id)
            if plan is None:
                raise NotFoundError(f"Payment plan {plan_id} not found")
            return plan

    @staticmethod
    def _sync_plan_status(plan: PaymentPlan) -> None:
        """completed when all non-cancelled installments are paid; active otherwise."""
        if plan.status == PlanStatus.CANCELLED:
            return
        live = [i for i in plan.installments if i.status != InstallmentStatus.CANCELLED]
        all_paid = bool(live) and all(i.status == InstallmentStatus.PAID for i in live)
        plan.status = PlanStatus.COMPLETED if all_paid else PlanStatus.ACTIVE
