"""
Change detection: which units must be rebuilt for a set of changed paths.
"""

from .change_detector import ChangeDetector, normalize_path, is_under_prefix
from .git_diff import changed_paths, resolve_commit, tag_from_commit

__all__ = [
    'ChangeDetector',
    'normalize_path',
    'is_under_prefix',
    'changed_paths',
    'resolve_commit',
    'tag_from_commit',
]
