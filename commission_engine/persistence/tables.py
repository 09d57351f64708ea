"""
Persisted payment plans and installments.

All monetary columns are NUMERIC(12, 2) and map to Decimal.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..models import InstallmentStatus, PaymentFrequency, PlanStatus
from .database import Base

Money = Numeric(12, 2, asdecimal=True)


def _enum(enum_cls, name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        values_callable=lambda members: [m.value for m in members],
    )


class PaymentPlan(Base):
    __tablename__ = "payment_plans"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="chk_total_amount_non_negative"),
        CheckConstraint("materials_cost >= 0", name="chk_materials_cost_non_negative"),
        CheckConstraint("admin_fees >= 0", name="chk_admin_fees_non_negative"),
        CheckConstraint("other_fees >= 0", name="chk_other_fees_non_negative"),
        CheckConstraint("student_lead_time_days >= 0", name="chk_student_lead_time_non_negative"),
        CheckConstraint("number_of_installments > 0", name="chk_number_of_installments_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    status: Mapped[PlanStatus] = mapped_column(_enum(PlanStatus, "payment_plan_status"), default=PlanStatus.ACTIVE)
    currency: Mapped[str] = mapped_column(String(3), default="AUD")

    total_amount: Mapped[Decimal] = mapped_column(Money)
    # Stored as a percentage (15.00 = 15%)
    commission_rate_percent: Mapped[Decimal] = mapped_column(Numeric(7, 4))
    gst_inclusive: Mapped[bool] = mapped_column(Boolean, default=True)

    materials_cost: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    admin_fees: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    other_fees: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))

    initial_payment_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    initial_payment_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    initial_payment_paid: Mapped[bool] = mapped_column(Boolean, default=False)

    first_college_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    student_lead_time_days: Mapped[int] = mapped_column(Integer, default=0)
    number_of_installments: Mapped[int] = mapped_column(Integer)
    payment_frequency: Mapped[PaymentFrequency] = mapped_column(_enum(PaymentFrequency, "payment_frequency"))

    # Derived; written only by RecalculationService
    commissionable_value: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    expected_commission: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    earned_commission: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    installments: Mapped[list["Installment"]] = relationship(
        back_populates="payment_plan",
        cascade="all, delete-orphan",
        order_by="Installment.installment_number",
        lazy="selectin",
    )

    @property
    def commission_rate(self) -> Decimal | None:
        """Decimal fraction form of the stored percentage."""
        if self.commission_rate_percent is None:
            return None
        return self.commission_rate_percent / Decimal("100")

    def __repr__(self) -> str:
        return f"<PaymentPlan id={self.id} total={self.total_amount} status={self.status}>"


class Installment(Base):
    __tablename__ = "installments"
    __table_args__ = (
        UniqueConstraint("payment_plan_id", "installment_number", name="uq_plan_installment_number"),
        CheckConstraint("installment_number >= 0", name="chk_installment_number_non_negative"),
        CheckConstraint("amount > 0", name="chk_amount_positive"),
        CheckConstraint("paid_amount IS NULL OR paid_amount >= 0", name="chk_paid_amount_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payment_plan_id: Mapped[int] = mapped_column(
        ForeignKey("payment_plans.id", ondelete="CASCADE"), index=True
    )

    installment_number: Mapped[int] = mapped_column(Integer)
    is_initial_payment: Mapped[bool] = mapped_column(Boolean, default=False)
    amount: Mapped[Decimal] = mapped_column(Money)
    generates_commission: Mapped[bool] = mapped_column(Boolean, default=True)

    # Dual timeline; both null for manually-scheduled (custom) installments
    student_due_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    college_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    status: Mapped[InstallmentStatus] = mapped_column(
        _enum(InstallmentStatus, "installment_status"), default=InstallmentStatus.DRAFT
    )
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    paid_amount: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    payment_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    payment_plan: Mapped[PaymentPlan] = relationship(back_populates="installments")

    def __repr__(self) -> str:
        return f"<Installment #{self.installment_number} amount={self.amount} status={self.status}>"
