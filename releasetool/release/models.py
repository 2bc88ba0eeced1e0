"""
Models for the release domain.
"""
from dataclasses import dataclass, field, asdict
from typing import List, Dict, Optional, Any
from enum import Enum


class UpdateStatus(Enum):
    """Outcome of updating one unit"""
    UPDATED = "updated"
    ALREADY_CURRENT = "already_current"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class UnitUpdateResult:
    """Result of patching one unit's values file"""
    unit: str
    status: UpdateStatus
    values_file: Optional[str] = None
    image: Optional[str] = None
    diff: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = asdict(self)
        result['status'] = self.status.value
        return result


@dataclass
class ReleaseReport:
    """Outcome of one release run"""
    tag: str
    forced: bool = False
    dry_run: bool = False
    updated: List[UnitUpdateResult] = field(default_factory=list)
    already_current: List[UnitUpdateResult] = field(default_factory=list)
    skipped: List[UnitUpdateResult] = field(default_factory=list)
    failed: List[UnitUpdateResult] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)

    def add(self, result: UnitUpdateResult):
        """File a unit result under its status"""
        bucket = {
            UpdateStatus.UPDATED: self.updated,
            UpdateStatus.ALREADY_CURRENT: self.already_current,
            UpdateStatus.SKIPPED: self.skipped,
            UpdateStatus.FAILED: self.failed,
        }[result.status]
        bucket.append(result)

    def dirty_units(self) -> List[str]:
        """Names of every unit the detector marked dirty"""
        return [
            r.unit for r in self.updated + self.already_current + self.skipped + self.failed
        ]

    def has_failures(self) -> bool:
        return bool(self.failed)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'tag': self.tag,
            'forced': self.forced,
            'dry_run': self.dry_run,
            'updated': [r.to_dict() for r in self.updated],
            'already_current': [r.to_dict() for r in self.already_current],
            'skipped': [r.to_dict() for r in self.skipped],
            'failed': [r.to_dict() for r in self.failed],
            'unchanged': list(self.unchanged),
        }

    def print_summary(self):
        """Print human-readable summary"""
        mode = " (dry run)" if self.dry_run else ""
        print(f"\n{'='*80}")
        print(f"RELEASE REPORT: tag {self.tag}{mode}")
        print(f"{'='*80}")
        if self.forced:
            print("All units forced")

        print(f"✅ Updated: {len(self.updated)} units")
        for r in self.updated:
            print(f"   - {r.unit}: {r.image} -> {r.values_file}")

        if self.already_current:
            print(f"\n⏭️  Already at {self.tag}: {len(self.already_current)} units")
            for r in self.already_current:
                print(f"   - {r.unit}")

        if self.skipped:
            print(f"\n⚠️  Skipped: {len(self.skipped)} units")
            for r in self.skipped:
                print(f"   - {r.unit}: {r.reason}")

        if self.failed:
            print(f"\n❌ Failed: {len(self.failed)} units")
            for r in self.failed:
                print(f"   - {r.unit}: {r.error}")

        print(f"\n⏭️  Unchanged: {len(self.unchanged)} units")
        print(f"{'='*80}\n")
