"""
Input Validation for the Commission & Installment Engine

Validates raw preview input before any calculation begins.
Every failing field is collected and reported together in a
StructuralValidationError, so a form can show all problems at once.
"""

from datetime import date, datetime
from decimal import Decimal

from dateutil.parser import isoparse

from .config import DEFAULT_CONFIG, EngineConfig
from .exceptions import FieldError, StructuralValidationError
from .models import PaymentFrequency, PaymentRecording, PreviewRequest
from .money import MAX_MONEY, has_at_most_places, has_at_most_two_places, to_decimal

# Rates are stored as percentages with 4 decimal places
RATE_DECIMAL_PLACES = 6

_MISSING = object()


class InputValidator:
    """Validates and parses preview requests according to business rules."""

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config

    def parse_preview_request(self, data: dict) -> PreviewRequest:
        """
        Validate a raw preview request and build a PreviewRequest.

        Raises StructuralValidationError listing every invalid field.
        """
        if not isinstance(data, dict):
            raise StructuralValidationError([FieldError("", "Request body must be a JSON object")])

        errors: list[FieldError] = []

        total = self._number(data, "total_course_value", errors, required=True)
        if total is not None and total <= 0:
            errors.append(FieldError("total_course_value", "Total course value must be positive"))

        rate = self._number(data, "commission_rate", errors, required=True)
        if rate is not None:
            if rate < 0:
                errors.append(FieldError("commission_rate", "Commission rate must be non-negative"))
            elif rate > 1:
                errors.append(FieldError("commission_rate", "Commission rate must be at most 1"))
            elif not has_at_most_places(rate, RATE_DECIMAL_PLACES):
                errors.append(FieldError(
                    "commission_rate",
                    f"Commission rate must have at most {RATE_DECIMAL_PLACES} decimal places",
                ))

        initial_amount = self._non_negative(
            data, "initial_payment_amount", "Initial payment amount must be non-negative", errors
        )
        materials = self._non_negative(data, "materials_cost", "Materials cost must be non-negative", errors)
        admin = self._non_negative(data, "admin_fees", "Admin fees must be non-negative", errors)
        other = self._non_negative(data, "other_fees", "Other fees must be non-negative", errors)

        count = self._integer(data, "number_of_installments", errors, required=True)
        if count is not None:
            if count <= 0:
                errors.append(FieldError("number_of_installments", "Number of installments must be positive"))
            elif count > self.config.max_installments:
                errors.append(FieldError(
                    "number_of_installments",
                    f"Number of installments must be at most {self.config.max_installments}",
                ))

        lead_time = self._integer(data, "student_lead_time_days", errors)
        if lead_time is None:
            lead_time = 0
        elif lead_time < 0:
            errors.append(FieldError("student_lead_time_days", "Student lead time days must be non-negative"))
        elif lead_time > self.config.max_lead_time_days:
            errors.append(FieldError(
                "student_lead_time_days",
                f"Student lead time days must be at most {self.config.max_lead_time_days}",
            ))

        frequency = self._frequency(data, errors)
        first_college_due_date = self._date(data, "first_college_due_date", errors, required=True)
        initial_due_date = self._date(
            data,
            "initial_payment_due_date",
            errors,
            required=initial_amount is not None and initial_amount > 0,
        )

        gst_inclusive = self._boolean(data, "gst_inclusive", errors, default=True)
        initial_paid = self._boolean(data, "initial_payment_paid", errors, default=False)

        if errors:
            raise StructuralValidationError(errors)

        return PreviewRequest(
            total_course_value=total,
            commission_rate=rate,
            gst_inclusive=gst_inclusive,
            number_of_installments=count,
            payment_frequency=frequency,
            first_college_due_date=first_college_due_date,
            student_lead_time_days=lead_time,
            initial_payment_amount=initial_amount,
            initial_payment_due_date=initial_due_date,
            initial_payment_paid=initial_paid,
            materials_cost=materials,
            admin_fees=admin,
            other_fees=other,
        )

    def parse_payment_recording(self, data: dict, today: date | None = None) -> PaymentRecording:
        """Validate a record-payment body: positive 2 dp amount, past-or-today date, short notes."""
        if not isinstance(data, dict):
            raise StructuralValidationError([FieldError("", "Request body must be a JSON object")])

        today = today or date.today()
        errors: list[FieldError] = []

        amount = self._number(data, "paid_amount", errors, required=True)
        if amount is not None:
            if amount <= 0:
                errors.append(FieldError("paid_amount", "Paid amount must be positive"))
            elif not has_at_most_two_places(amount):
                errors.append(FieldError("paid_amount", "Paid amount must have at most 2 decimal places"))

        paid_date = self._date(data, "paid_date", errors, required=True)
        if paid_date is not None and paid_date > today:
            errors.append(FieldError("paid_date", "Paid date cannot be in the future"))

        notes = data.get("notes")
        if notes is not None:
            if not isinstance(notes, str):
                errors.append(FieldError("notes", "Notes must be a string"))
            elif len(notes) > self.config.max_notes_length:
                errors.append(FieldError(
                    "notes", f"Notes cannot exceed {self.config.max_notes_length} characters"
                ))

        if errors:
            raise StructuralValidationError(errors)

        return PaymentRecording(paid_date=paid_date, paid_amount=amount, notes=notes or None)

    # -------------------------------------------------------------------------
    # Field helpers. Each returns None after appending an error.
    # -------------------------------------------------------------------------

    def _number(self, data: dict, name: str, errors: list, required: bool = False) -> Decimal | None:
        value = data.get(name, _MISSING)
        if value is _MISSING or value is None:
            if required:
                errors.append(FieldError(name, f"{name} is required"))
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
            errors.append(FieldError(name, f"{name} must be a number"))
            return None
        number = to_decimal(value)
        if not number.is_finite():
            errors.append(FieldError(name, f"{name} must be a finite number"))
            return None
        if abs(number) > MAX_MONEY:
            errors.append(FieldError(name, f"{name} must be at most {MAX_MONEY}"))
            return None
        return number

    def _non_negative(self, data: dict, name: str, message: str, errors: list) -> Decimal | None:
        value = self._number(data, name, errors)
        if value is None:
            return Decimal("0") if name not in data or data[name] is None else None
        if value < 0:
            errors.append(FieldError(name, message))
            return None
        return value

    def _integer(self, data: dict, name: str, errors: list, required: bool = False) -> int | None:
        value = data.get(name, _MISSING)
        if value is _MISSING or value is None:
            if required:
                errors.append(FieldError(name, f"{name} is required"))
            return None
        if isinstance(value, bool):
            errors.append(FieldError(name, f"{name} must be an integer"))
            return None
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if not isinstance(value, int):
            errors.append(FieldError(name, f"{name} must be an integer"))
            return None
        return value

    def _boolean(self, data: dict, name: str, errors: list, default: bool) -> bool:
        value = data.get(name, default)
        if value is None:
            return default
        if not isinstance(value, bool):
            errors.append(FieldError(name, f"{name} must be a boolean"))
            return default
        return value

    def _frequency(self, data: dict, errors: list) -> PaymentFrequency | None:
        value = data.get("payment_frequency")
        try:
            return PaymentFrequency(value)
        except ValueError:
            errors.append(FieldError(
                "payment_frequency",
                "Payment frequency must be 'monthly', 'quarterly', or 'custom'",
            ))
            return None

    def _date(self, data: dict, name: str, errors: list, required: bool = False) -> date | None:
        value = data.get(name)
        if value is None or value == "":
            if required:
                errors.append(FieldError(name, f"{name} is required"))
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if not isinstance(value, str):
            errors.append(FieldError(name, f"Invalid date format for {name}"))
            return None
        try:
            return isoparse(value).date()
        except (ValueError, OverflowError):
            errors.append(FieldError(name, f"Invalid date format for {name}"))
            return None
