"""
Schema comparison service for schemasync.
"""

import logging
from typing import Optional

from ..exceptions import SchemaLoadError
from .mapper import map_snapshot_differences
from .models import SchemaDifferenceResult, SchemaSnapshot
from .reconciler import ProgressCallback, SyncProgress, SyncProgressStage


logger = logging.getLogger(__name__)


class SchemaComparisonService:
    """Compares source and target snapshots."""

    def compare(
        self, source: SchemaSnapshot, target: SchemaSnapshot
    ) -> SchemaDifferenceResult:
        """Compute the ordered differences between two snapshots. Never raises."""
        result = map_snapshot_differences(source, target)
        logger.debug(
            f"Compared {len(source)} source objects with {len(target)} target objects: "
            f"{len(result.all_differences)} differences"
        )
        return result

    async def compare_repositories(
        self,
        source,
        target,
        progress: Optional[ProgressCallback] = None,
    ) -> SchemaDifferenceResult:
        """
        Load snapshots from two repositories and compare them.

        Raises:
            SchemaLoadError: If either snapshot cannot be obtained
        """

        def report(message: str, percent: int, stage: SyncProgressStage) -> None:
            if progress is not None:
                progress(SyncProgress(message, percent, stage))

        try:
            report("Loading source schema...", 10, SyncProgressStage.LOADING_SOURCE_SCHEMA)
            source_snapshot = await source.get_snapshot()

            report("Loading target schema...", 50, SyncProgressStage.LOADING_TARGET_SCHEMA)
            target_snapshot = await target.get_snapshot()

            report("Comparing schemas...", 75, SyncProgressStage.COMPARING_SCHEMAS)
            result = self.compare(source_snapshot, target_snapshot)

            report("Comparison complete", 100, SyncProgressStage.COMPLETE)
            return result

        except SchemaLoadError:
            raise
        except Exception as e:
            logger.error(f"Failed to load and compare schemas: {e}")
            raise SchemaLoadError("Failed to load and compare schemas", cause=e) from e
