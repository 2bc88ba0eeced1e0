"""
Release orchestration: detection followed by per-unit image patches.
"""

from .models import UpdateStatus, UnitUpdateResult, ReleaseReport
from .lock import DocumentLock
from .manager import ReleaseManager

__all__ = [
    'UpdateStatus',
    'UnitUpdateResult',
    'ReleaseReport',
    'DocumentLock',
    'ReleaseManager',
]
