"""
Agora Backend: Orphan Reconciliation Sweeper
=============================================

What:  Removes physical files that no database row references.
Why:   Every write path orders its steps so that a crash can only ever leave
       a file WITHOUT a row, never a row without a file. This sweep is the
       other half of that bargain: it deletes those leftover files.
When:  Once at startup, before the app accepts traffic (lifespan), and on
       demand through POST /api/admin/sweep.

Steps:
    1. Purge stale uploads: `files` rows that were never attached to a post
       and are older than `unassociated_file_max_age_hours` are deleted and
       committed; their files then become orphans.
    2. For each category, list the directory FIRST, then load the set of live
       filenames. Any listed file whose row has committed by the time of the
       lookup is kept, even if the upload finished mid-sweep.
    3. Remove every listed file whose name is not live.

    An upload whose file is on disk but whose row is still uncommitted looks
    like an orphan. At startup no request is in flight, which is why the
    automatic run happens before serving.

Idempotent: a second run with no new uploads finds nothing to remove.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Set, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.database import async_session_factory
from app.exceptions import StorageCleanupWarning
from app.models import User
from app.services import file_record_store
from app.services.file_service import FileService, file_service
from app.services.storage_paths import FileCategory

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """What one sweep removed, and what it could not remove."""

    removed: List[Tuple[str, str]] = field(default_factory=list)
    purged_records: int = 0
    warnings: List[StorageCleanupWarning] = field(default_factory=list)

    @property
    def removed_count(self) -> int:
        return len(self.removed)


class OrphanSweeper:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        files: FileService,
        unassociated_max_age_hours: int = settings.unassociated_file_max_age_hours,
    ):
        self.session_factory = session_factory
        self.files = files
        self.unassociated_max_age_hours = unassociated_max_age_hours

    async def run(self) -> SweepReport:
        """Run one full reconciliation pass and return its report."""
        report = SweepReport()

        if self.unassociated_max_age_hours > 0:
            report.purged_records = await self.purge_unassociated(report)

        for category in self.files.resolver.categories():
            await self.sweep_category(category, report)

        logger.info(
            "Sweep finished: %d orphan file(s) removed, %d stale upload(s) purged, %d warning(s)",
            report.removed_count,
            report.purged_records,
            len(report.warnings),
        )
        return report

    async def purge_unassociated(self, report: SweepReport) -> int:
        """
        Delete File rows never attached to a post and older than the max age.

        The rows are committed away before any physical file is touched.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(hours=self.unassociated_max_age_hours)

        async with self.session_factory() as db, db.begin():
            stale = await file_record_store.list_unassociated_before(db, cutoff)
            filenames = [record.filename for record in stale]
            purged = 0
            for record in stale:
                purged += await file_record_store.delete(db, record.id)

        if filenames:
            logger.info("Purging %d unassociated upload(s) older than %s", len(filenames), cutoff)
        for filename in filenames:
            await self._remove(FileCategory.POST_ATTACHMENT, filename, report)
        return purged

    async def sweep_category(self, category: FileCategory, report: SweepReport) -> None:
        on_disk = await self.files.list_files(category)
        live = await self.live_references(category)

        for filename in on_disk:
            if filename not in live:
                await self._remove(category, filename, report)

    async def live_references(self, category: FileCategory) -> Set[str]:
        """Filenames the database currently references for a category."""
        async with self.session_factory() as db:
            if category == FileCategory.AVATAR:
                result = await db.execute(select(User.avatar).where(User.avatar.is_not(None)))
                return set(result.scalars().all())
            return await file_record_store.live_filenames(db)

    async def _remove(self, category: FileCategory, filename: str, report: SweepReport) -> None:
        warning = await self.files.remove_file(category, filename)
        if warning is None:
            report.removed.append((category.value, filename))
        else:
            report.warnings.append(warning)


# ── Singleton Instance ────────────────────────────────────────────────────
orphan_sweeper = OrphanSweeper(async_session_factory, file_service)
