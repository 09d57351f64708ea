"""
Output Builder

Constructs API responses from previews, persisted plans and errors.
"""

from datetime import date

from .exceptions import (
    ConsistencyError,
    DomainValidationError,
    InvalidTransitionError,
    NotFoundError,
    StructuralValidationError,
)
from .models import InstallmentPreview, PreviewResult
from .money import to_money


def _iso(value: date | None) -> str:
    """Render a date as YYYY-MM-DD; manual-entry placeholders become ''."""
    return value.isoformat() if value else ""


def _status(value) -> str:
    return getattr(value, "value", value)


class OutputBuilder:
    """Builds the final output responses."""

    def build_preview(self, result: PreviewResult) -> dict:
        """Construct the preview response: installments plus summary."""
        summary = result.summary
        return {
            "installments": [self._build_preview_installment(i) for i in result.installments],
            "summary": {
                "total_course_value": to_money(summary.total_course_value),
                "commissionable_value": to_money(summary.commissionable_value),
                "expected_commission": to_money(summary.expected_commission),
                "initial_payment": to_money(summary.initial_payment),
                "total_installments": summary.total_installments,
                "amount_per_installment": to_money(summary.amount_per_installment),
            },
        }

    def _build_preview_installment(self, installment: InstallmentPreview) -> dict:
        return {
            "installment_number": installment.installment_number,
            "amount": to_money(installment.amount),
            "student_due_date": _iso(installment.student_due_date),
            "college_due_date": _iso(installment.college_due_date),
            "is_initial_payment": installment.is_initial_payment,
            "generates_commission": installment.generates_commission,
            "status": _status(installment.status),
        }

    def build_plan(self, plan, include_installments: bool = True) -> dict:
        """Serialize a persisted payment plan with its derived commission fields."""
        output = {
            "id": plan.id,
            "status": _status(plan.status),
            "currency": plan.currency,
            "total_amount": to_money(plan.total_amount),
            "commission_rate": float(plan.commission_rate),
            "commission_rate_percent": float(plan.commission_rate_percent),
            "gst_inclusive": plan.gst_inclusive,
            "materials_cost": to_money(plan.materials_cost),
            "admin_fees": to_money(plan.admin_fees),
            "other_fees": to_money(plan.other_fees),
            "commissionable_value": to_money(plan.commissionable_value),
            "expected_commission": to_money(plan.expected_commission),
            "earned_commission": to_money(plan.earned_commission),
        }
        if include_installments:
            output["installments"] = [
                self.build_installment(i)
                for i in sorted(plan.installments, key=lambda i: i.installment_number)
            ]
        return output

    def build_installment(self, installment) -> dict:
        return {
            "id": installment.id,
            "payment_plan_id": installment.payment_plan_id,
            "installment_number": installment.installment_number,
            "amount": to_money(installment.amount),
            "student_due_date": _iso(installment.student_due_date),
            "college_due_date": _iso(installment.college_due_date),
            "is_initial_payment": installment.is_initial_payment,
            "generates_commission": installment.generates_commission,
            "status": _status(installment.status),
            "paid_date": _iso(installment.paid_date) or None,
            "paid_amount": to_money(installment.paid_amount) if installment.paid_amount is not None else None,
            "payment_notes": installment.payment_notes,
        }

    @staticmethod
    def build_error(error: Exception) -> dict:
        """Render an engine error as a response body."""
        if isinstance(error, StructuralValidationError):
            return {"error": error.message, "status": "validation_failed", "errors": error.to_list()}
        if isinstance(error, DomainValidationError):
            return {"error": str(error), "status": "domain_validation_failed"}
        if isinstance(error, NotFoundError):
            return {"error": str(error), "status": "not_found"}
        if isinstance(error, (ConsistencyError, InvalidTransitionError)):
            return {"error": str(error), "status": "conflict"}
        return {"error": str(error), "status": "validation_failed"}

    @staticmethod
    def status_code(error: Exception) -> int:
        """HTTP status for an engine error."""
        if isinstance(error, NotFoundError):
            return 404
        if isinstance(error, (ConsistencyError, InvalidTransitionError)):
            return 409
        return 400
