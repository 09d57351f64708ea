"""
Due Date Scheduler

Builds the college due-date sequence for a plan and derives the
student-facing due dates (the dual timeline).
"""

from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from ..models import PaymentFrequency

MONTHS_PER_STEP = {
    PaymentFrequency.MONTHLY: 1,
    PaymentFrequency.QUARTERLY: 3,
}


class DueDateScheduler:
    """Generates installment due dates."""

    def generate(self, first_college_due_date: date, count: int, frequency) -> list[date | None]:
        """
        Generate `count` college due dates starting at `first_college_due_date`.

        Every date is offset from the first one (not from its predecessor), so
        the day-of-month is kept and only clamped to the end of short months:
        Jan 31 -> Feb 28 -> Mar 31.

        Custom frequency yields `count` None placeholders; the dates are
        entered manually downstream.
        """
        frequency = PaymentFrequency(frequency)
        if count <= 0:
            return []

        if frequency == PaymentFrequency.CUSTOM:
            return [None] * count

        step = MONTHS_PER_STEP[frequency]
        return [
            first_college_due_date + relativedelta(months=step * i)
            for i in range(count)
        ]

    @staticmethod
    def student_due_date(college_due_date: date | None, lead_time_days: int) -> date | None:
        """Student pays `lead_time_days` calendar days before the college is owed."""
        if college_due_date is None:
            return None
        return college_due_date - timedelta(days=lead_time_days)

    def student_due_dates(self, college_due_dates: list[date | None], lead_time_days: int) -> list[date | None]:
        return [self.student_due_date(d, lead_time_days) for d in college_due_dates]
