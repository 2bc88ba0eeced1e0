"""
Release loop: detect dirty units, then point each one's values file at the
new image.
"""
import asyncio
import logging
from pathlib import Path
from typing import Dict, Optional

from ..config.global_config_loader import GlobalConfig
from ..core.models import Unit, ChangeSet, DirtySet
from ..core.exceptions import PatchError
from ..detect.change_detector import ChangeDetector
from ..patch.document import StructuredDocument
from ..patch.patcher import DocumentPatcher
from .lock import DocumentLock
from .models import ReleaseReport, UnitUpdateResult, UpdateStatus


class ReleaseManager:
    """
    Runs one release: change detection followed by one image patch per
    dirty unit. Independent documents are patched concurrently; updates of
    the same document are serialised by a DocumentLock.
    """

    def __init__(
        self,
        config: GlobalConfig,
        detector: Optional[ChangeDetector] = None,
        patcher: Optional[DocumentPatcher] = None
    ):
        """
        Initialize release manager.

        Args:
            config: Loaded releasetool configuration
            detector: ChangeDetector instance
            patcher: DocumentPatcher instance
        """
        self.config = config
        self.detector = detector or ChangeDetector()
        self.patcher = patcher or DocumentPatcher()
        self.logger = logging.getLogger(__name__)

    def detect(self, changes: Optional[ChangeSet] = None, force_all: bool = False) -> DirtySet:
        """Dirty units for ``changes``, or every unit when ``force_all``"""
        if force_all:
            return self.detector.detect_all(self.config.units)
        return self.detector.detect(self.config.units, changes or ChangeSet())

    async def run(
        self,
        tag: str,
        changes: Optional[ChangeSet] = None,
        force_all: bool = False,
        dry_run: bool = False
    ) -> ReleaseReport:
        """
        Run the release.

        Args:
            tag: Image tag to deploy (typically the short commit SHA)
            changes: Changed paths; ignored when ``force_all``
            force_all: Update every unit regardless of changes
            dry_run: Compute patches without writing them

        Returns:
            ReleaseReport with one entry per unit
        """
        if not tag:
            raise ValueError("tag must not be empty")

        dirty = self.detect(changes, force_all)
        report = ReleaseReport(tag=tag, forced=dirty.forced, dry_run=dry_run)

        dirty_units = [unit for unit in self.config.units if unit.name in dirty]
        report.unchanged = [unit.name for unit in self.config.units if unit.name not in dirty]

        semaphore = asyncio.Semaphore(max(1, self.config.release.max_concurrent_updates))

        async def bounded(unit: Unit) -> UnitUpdateResult:
            async with semaphore:
                return await self.update_unit(unit, tag, dry_run)

        results = await asyncio.gather(*(bounded(unit) for unit in dirty_units))
        for result in results:
            report.add(result)

        self.logger.info(
            f"Release {tag} complete: updated={len(report.updated)}, "
            f"already_current={len(report.already_current)}, "
            f"skipped={len(report.skipped)}, failed={len(report.failed)}, "
            f"unchanged={len(report.unchanged)}"
        )
        return report

    def image_values(self, unit: Unit, tag: str) -> Dict[str, str]:
        """Field values to write into the unit's image section"""
        patch_cfg = self.config.patch
        values = {}
        repository = self.config.image_repository(unit)
        if repository:
            values[patch_cfg.repository_field] = repository
        values[patch_cfg.tag_field] = tag
        return values

    async def update_unit(self, unit: Unit, tag: str, dry_run: bool = False) -> UnitUpdateResult:
        """
        Patch one unit's values file.

        Patch failures abort this unit's update: nothing is written and the
        result is FAILED, so the operator sees the drift.
        """
        repository = self.config.image_repository(unit)
        image = f"{repository}:{tag}" if repository else tag

        if not unit.values_file:
            self.logger.warning(f"Unit {unit.name} is dirty but has no values_file")
            return UnitUpdateResult(
                unit=unit.name,
                status=UpdateStatus.SKIPPED,
                image=image,
                reason="no values_file configured"
            )

        path = Path(unit.values_file)
        patch_cfg = self.config.patch

        try:
            async with DocumentLock(path, timeout=self.config.release.lock_timeout):
                if not path.exists():
                    raise FileNotFoundError(f"values file not found: {path}")
                doc = StructuredDocument.from_path(path)
                patched = self.patcher.patch_fields(
                    doc,
                    patch_cfg.section,
                    self.image_values(unit, tag),
                    occurrence=patch_cfg.occurrence
                )
                if patched is doc:
                    return UnitUpdateResult(
                        unit=unit.name,
                        status=UpdateStatus.ALREADY_CURRENT,
                        values_file=str(path),
                        image=image
                    )
                diff = doc.diff(patched)
                if not dry_run:
                    patched.write_to(path)
        except (PatchError, OSError, TimeoutError) as e:
            self.logger.error(f"Failed to update unit {unit.name}: {e}")
            return UnitUpdateResult(
                unit=unit.name,
                status=UpdateStatus.FAILED,
                values_file=str(path),
                image=image,
                error=str(e)
            )

        self.logger.info(f"Unit {unit.name}: {path} -> {image}")
        return UnitUpdateResult(
            unit=unit.name,
            status=UpdateStatus.UPDATED,
            values_file=str(path),
            image=image,
            diff=diff
        )
