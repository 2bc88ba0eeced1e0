"""
releasetool - change detection and image patching for GitOps releases

Main modules:
- core: Shared data models and exceptions
- detect: Maps changed paths onto deployable units
- patch: Replaces one value in one section of a YAML document
- release: Runs detection and per-unit patches, with reporting
- config: Configuration loading
- cli: Command-line interface
"""

from .core.models import Unit, ChangeSet, DirtySet, PatchTarget
from .core.exceptions import ReleaseToolError, TargetNotFound, MalformedDocument
from .detect.change_detector import ChangeDetector
from .patch.document import StructuredDocument
from .patch.patcher import DocumentPatcher
from .release.manager import ReleaseManager
from .config.global_config_loader import GlobalConfig, load_global_config

__version__ = "1.0.0"
__all__ = [
    'Unit',
    'ChangeSet',
    'DirtySet',
    'PatchTarget',
    'ReleaseToolError',
    'TargetNotFound',
    'MalformedDocument',
    'ChangeDetector',
    'StructuredDocument',
    'DocumentPatcher',
    'ReleaseManager',
    'GlobalConfig',
    'load_global_config',
]
