"""
Reconciliation driver for schemasync.

Applies a caller-selected sequence of schema differences to a target
repository, one at a time and in the order given.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ..exceptions import SyncCancelledError, SyncError, UnknownObjectKindError
from .models import DifferenceKind, LineEndingMode, ObjectKind, SchemaDifference


logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    """Status of a sync run."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class SyncProgressStage(str, Enum):
    """Stages reported through the progress callback."""

    UNKNOWN = "unknown"
    LOADING_SOURCE_SCHEMA = "loading_source_schema"
    LOADING_TARGET_SCHEMA = "loading_target_schema"
    COMPARING_SCHEMAS = "comparing_schemas"
    SYNCHRONIZING_SCHEMAS = "synchronizing_schemas"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SyncProgress:
    """A single progress report."""

    message: str
    percent_complete: Optional[int] = None
    stage: SyncProgressStage = SyncProgressStage.UNKNOWN


ProgressCallback = Callable[[SyncProgress], None]


@dataclass(frozen=True)
class SyncPolicy:
    """Controls how differences are applied to the target."""

    allow_delete: bool = False
    continue_on_error: bool = False

    # Store formatting options passed through to writers
    create_merge: bool = False
    fields_on_new_line: bool = False
    line_ending_mode: LineEndingMode = LineEndingMode.LEAVE_AS_IS


class CancellationToken:
    """Cooperative cancellation flag, safe to set from any thread."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class ItemFailure:
    """A difference that failed while continuing on error."""

    index: int
    difference: SchemaDifference
    error: BaseException


@dataclass
class SyncResult:
    """Result of a sync run that was not aborted."""

    status: SyncStatus
    total: int
    applied: List[SchemaDifference] = field(default_factory=list)
    skipped: List[SchemaDifference] = field(default_factory=list)
    failures: List[ItemFailure] = field(default_factory=list)
    execution_time_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == SyncStatus.SUCCESS

    @property
    def items_synchronized(self) -> int:
        return len(self.applied)

    @property
    def errors(self) -> List[str]:
        return [f"{f.difference.object.qualified_name}: {f.error}" for f in self.failures]


class SchemaReconciler:
    """
    Applies schema differences to a target writer.

    By default the first unexpected error aborts the run: later differences
    are not attempted and earlier ones are not rolled back. The error is
    raised as ``SyncError`` with the original exception as its cause.
    Setting ``policy.continue_on_error`` collects per-item failures instead.
    """

    def __init__(self, target):
        self.target = target
        self._sync_lock = asyncio.Lock()

    async def apply(
        self,
        differences: Sequence[SchemaDifference],
        policy: Optional[SyncPolicy] = None,
        cancellation: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> SyncResult:
        """
        Apply ``differences`` sequentially.

        Raises:
            SyncCancelledError: If ``cancellation`` was set before an item started
            SyncError: If an item failed and ``continue_on_error`` is off
            UnknownObjectKindError: If a difference carries an unsupported kind
        """
        policy = policy or SyncPolicy()
        differences = list(differences)
        result = SyncResult(status=SyncStatus.SUCCESS, total=len(differences))

        if not differences:
            return result

        # One run at a time per target
        async with self._sync_lock:
            start_time = asyncio.get_running_loop().time()
            self._report(progress, "Starting synchronization...", 0)

            try:
                for index, difference in enumerate(differences):
                    if cancellation is not None and cancellation.is_cancelled:
                        logger.info(
                            f"Synchronization cancelled after {len(result.applied)} "
                            f"of {len(differences)} differences"
                        )
                        raise SyncCancelledError(
                            applied=len(result.applied), remaining=differences[index:]
                        )

                    self._report(
                        progress,
                        f"Processing {difference.name}...",
                        int(index / len(differences) * 100),
                    )

                    try:
                        applied = await self._apply_one(difference, policy)
                    except (SyncError, SyncCancelledError, UnknownObjectKindError, asyncio.CancelledError):
                        raise
                    except Exception as e:
                        if not policy.continue_on_error:
                            logger.error(f"Failed to apply {difference}: {e}")
                            raise SyncError(
                                "Failed to synchronize schemas",
                                cause=e,
                                index=index,
                                difference=difference,
                                applied=len(result.applied),
                                remaining=differences[index:],
                            ) from e
                        logger.warning(f"Failed to apply {difference}, continuing: {e}")
                        result.failures.append(ItemFailure(index, difference, e))
                        continue

                    if applied:
                        result.applied.append(difference)
                    else:
                        result.skipped.append(difference)
            finally:
                result.execution_time_ms = (
                    asyncio.get_running_loop().time() - start_time
                ) * 1000

        if result.failures:
            result.status = SyncStatus.PARTIAL if result.applied else SyncStatus.FAILED

        self._report(progress, "Synchronization complete", 100, SyncProgressStage.COMPLETE)
        logger.info(
            f"Synchronization {result.status.value}: {len(result.applied)} applied, "
            f"{len(result.skipped)} skipped, {len(result.failures)} failed "
            f"({result.execution_time_ms:.1f}ms)"
        )
        return result

    async def _apply_one(self, difference: SchemaDifference, policy: SyncPolicy) -> bool:
        """Apply a single difference. Returns False when it was skipped by policy."""
        if difference.object_kind not in (ObjectKind.TABLE, ObjectKind.FUNCTION):
            raise UnknownObjectKindError(difference.object_kind)

        if difference.kind in (DifferenceKind.ONLY_IN_SOURCE, DifferenceKind.MODIFIED):
            logger.debug(f"Create or alter {difference.object.qualified_name}")
            await self.target.create_or_alter(difference.object, policy)
            return True

        if difference.kind == DifferenceKind.ONLY_IN_TARGET:
            if not policy.allow_delete:
                logger.info(f"Skipping delete of {difference.object.qualified_name}: deletes not allowed")
                return False
            logger.debug(f"Delete {difference.object.qualified_name}")
            await self.target.delete(difference.object_kind, difference.name)
            return True

        raise ValueError(f"Unknown difference kind: {difference.kind!r}")

    @staticmethod
    def _report(
        progress: Optional[ProgressCallback],
        message: str,
        percent: int,
        stage: SyncProgressStage = SyncProgressStage.SYNCHRONIZING_SCHEMAS,
    ) -> None:
        if progress is not None:
            progress(SyncProgress(message, percent, stage))
