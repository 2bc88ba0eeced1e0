"""
Detects which units need a rebuild for a set of changed paths.
"""
from typing import Optional, Sequence
import logging

from ..core.models import Unit, ChangeSet, DirtySet


PATH_SEPARATOR = "/"


def normalize_path(path) -> Optional[str]:
    """
    Normalize a changed path or a unit prefix for matching.

    Args:
        path: Raw path value

    Returns:
        Normalized path, or None if the value cannot match anything
    """
    if not isinstance(path, str):
        return None
    path = path.strip()
    while path.startswith("./"):
        path = path[2:]
    path = path.rstrip(PATH_SEPARATOR)
    return path or None


def is_under_prefix(path: str, prefix: str) -> bool:
    """
    Check whether ``path`` lies under ``prefix`` on a path-segment boundary.

    ``src/cat`` does not match ``src/catalog/app.py``.
    """
    norm_path = normalize_path(path)
    norm_prefix = normalize_path(prefix)
    if norm_path is None or norm_prefix is None:
        return False
    return norm_path.startswith(norm_prefix + PATH_SEPARATOR)


class ChangeDetector:
    """Maps changed paths onto registered units"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def detect(self, units: Sequence[Unit], changes: ChangeSet) -> DirtySet:
        """
        Detect units with at least one changed path under their prefix.

        Prefixes may overlap; one path can mark several units dirty.
        Paths that cannot be matched are ignored, detection never fails.

        Args:
            units: Registered units, in registration order
            changes: Changed paths between two revisions

        Returns:
            DirtySet with the names of the dirty units
        """
        dirty = set()

        for unit in units:
            hit = next(
                (path for path in changes if is_under_prefix(path, unit.path_prefix)),
                None
            )
            if hit is None:
                self.logger.debug(f"Unit unchanged: {unit.name}")
                continue
            dirty.add(unit.name)
            self.logger.debug(f"Unit {unit.name} dirty, first match: {hit}")

        self.logger.info(
            f"Change detection complete: "
            f"changed_paths={len(changes)}, units={len(units)}, dirty={len(dirty)}"
        )
        return DirtySet(frozenset(dirty))

    def detect_all(self, units: Sequence[Unit]) -> DirtySet:
        """
        Mark every registered unit dirty (manual trigger).

        Args:
            units: Registered units

        Returns:
            DirtySet containing all unit names, flagged as forced
        """
        self.logger.info(f"Force-all requested, marking {len(units)} units dirty")
        return DirtySet(frozenset(unit.name for unit in units), forced=True)
