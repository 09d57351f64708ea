"""
Persistence Package

SQLAlchemy tables for payment plans and installments, and the service that
keeps their derived commission fields consistent.
"""

from .database import Base, make_engine, make_session_factory
from .recalculation import RecalculationService
from .tables import Installment, PaymentPlan

__all__ = [
    "Base",
    "make_engine",
    "make_session_factory",
    "RecalculationService",
    "PaymentPlan",
    "Installment",
]
