"""
Exception hierarchy for releasetool.
"""
from typing import Optional


class ReleaseToolError(Exception):
    """Base class for all releasetool errors"""


class ConfigError(ReleaseToolError):
    """Invalid or unreadable releasetool configuration"""


class GitDiffError(ReleaseToolError):
    """Changed paths could not be obtained from git"""


class PatchError(ReleaseToolError):
    """Base class for document patch failures"""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class TargetNotFound(PatchError):
    """No section occurrence (or no field in it) matches the patch target"""


class MalformedDocument(PatchError):
    """Document cannot be parsed, or the target value cannot be replaced in place"""
