"""
Core models and exceptions shared by detection, patching and release.
"""

from .models import Unit, ChangeSet, DirtySet, PatchTarget
from .exceptions import (
    ReleaseToolError,
    ConfigError,
    GitDiffError,
    PatchError,
    TargetNotFound,
    MalformedDocument
)

__all__ = [
    'Unit',
    'ChangeSet',
    'DirtySet',
    'PatchTarget',
    'ReleaseToolError',
    'ConfigError',
    'GitDiffError',
    'PatchError',
    'TargetNotFound',
    'MalformedDocument',
]
