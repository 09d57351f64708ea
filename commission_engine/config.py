"""
Engine configuration.

GST rate and currency defaults are passed explicitly into the calculators
so a plan can be priced under any jurisdiction's tax rate.
"""

import os
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class EngineConfig:
    """Tunable constants for commission and installment calculations."""

    gst_rate: Decimal = Decimal('0.10')
    default_currency: str = 'AUD'
    # A recorded payment may exceed the installment amount by up to 10%
    overpayment_tolerance: Decimal = Decimal('1.10')
    max_installments: int = 60
    max_lead_time_days: int = 365
    max_notes_length: int = 500

    @property
    def gst_divisor(self) -> Decimal:
        return Decimal('1') + self.gst_rate

    @classmethod
    def from_env(cls) -> "EngineConfig":
        defaults = cls()
        return cls(
            gst_rate=Decimal(os.environ.get("ENGINE_GST_RATE", str(defaults.gst_rate))),
            default_currency=os.environ.get("ENGINE_DEFAULT_CURRENCY", defaults.default_currency),
            overpayment_tolerance=Decimal(
                os.environ.get("ENGINE_OVERPAYMENT_TOLERANCE", str(defaults.overpayment_tolerance))
            ),
            max_installments=int(os.environ.get("ENGINE_MAX_INSTALLMENTS", defaults.max_installments)),
        )


DEFAULT_CONFIG = EngineConfig()
