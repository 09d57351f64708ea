"""
COMMISSION & INSTALLMENT ENGINE
Commission calculation and installment scheduling for education agency payment plans.
"""

from .config import EngineConfig
from .lifecycle import InstallmentLifecycle
from .models import PreviewRequest, PreviewResult
from .preview import InstallmentPreviewBuilder

__all__ = [
    'InstallmentPreviewBuilder',
    'InstallmentLifecycle',
    'EngineConfig',
    'PreviewRequest',
    'PreviewResult',
]
