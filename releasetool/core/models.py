"""
Core data models for change detection and document patching.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Any


@dataclass(frozen=True)
class Unit:
    """A named deployable component (one microservice)"""
    name: str
    path_prefix: str
    values_file: Optional[str] = None
    repository: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'name': self.name,
            'path_prefix': self.path_prefix,
            'values_file': self.values_file,
            'repository': self.repository,
        }


@dataclass(frozen=True)
class ChangeSet:
    """Ordered sequence of distinct changed file paths"""
    paths: Tuple[str, ...] = ()

    def __post_init__(self):
        # Keep first occurrence of every path, preserve order
        seen = set()
        unique = []
        for path in self.paths:
            if path in seen:
                continue
            seen.add(path)
            unique.append(path)
        object.__setattr__(self, 'paths', tuple(unique))

    @classmethod
    def from_paths(cls, paths: Iterable[str]) -> 'ChangeSet':
        """Create from any iterable of paths"""
        return cls(tuple(paths))

    def __iter__(self):
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.paths)

    def is_empty(self) -> bool:
        return not self.paths


@dataclass(frozen=True)
class DirtySet:
    """Unit names requiring rebuild, as produced by one detection run"""
    names: FrozenSet[str] = frozenset()
    forced: bool = False

    def __contains__(self, name: str) -> bool:
        return name in self.names

    def __iter__(self):
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)

    def ordered(self, units: Sequence[Unit]) -> List[str]:
        """
        Return dirty unit names in registration order.

        Args:
            units: Registered units

        Returns:
            List of names, following the order of ``units``
        """
        return [unit.name for unit in units if unit.name in self.names]

    def to_matrix(self, units: Sequence[Unit]) -> Dict[str, List[Dict[str, str]]]:
        """Build-matrix mapping for a CI runner"""
        return {'include': [{'unit': name} for name in self.ordered(units)]}


@dataclass(frozen=True)
class PatchTarget:
    """
    Pointer to exactly one field inside one section occurrence.

    ``occurrence`` counts sections sharing the key ``section`` in document
    order, starting at 0. The default selects the first occurrence.
    """
    section: str
    field: str
    occurrence: int = 0

    def __post_init__(self):
        if self.occurrence < 0:
            raise ValueError(f"occurrence must be >= 0, got {self.occurrence}")

    def describe(self) -> str:
        return f"{self.section}[{self.occurrence}].{self.field}"

