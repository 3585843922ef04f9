"""
Tests for schemasync.schema.reconciler module.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from schemasync.exceptions import SyncCancelledError, SyncError, UnknownObjectKindError
from schemasync.repositories.memory import InMemorySchemaRepository
from schemasync.schema.mapper import map_snapshot_differences
from schemasync.schema.models import DifferenceKind, ObjectKind, SchemaDifference, SchemaSnapshot
from schemasync.schema.reconciler import (
    CancellationToken,
    SchemaReconciler,
    SyncPolicy,
    SyncProgressStage,
    SyncStatus,
)
from tests.conftest import RecordingWriter, make_function, make_table


def _differences(*specs):
    """Build differences from (kind, name) pairs, all tables."""
    return [SchemaDifference(kind, make_table(name, "id integer")) for kind, name in specs]


THREE_CREATES = [
    (DifferenceKind.ONLY_IN_SOURCE, "a"),
    (DifferenceKind.ONLY_IN_SOURCE, "b"),
    (DifferenceKind.ONLY_IN_SOURCE, "c"),
]


class TestSyncPolicy:
    """Test SyncPolicy defaults."""

    def test_defaults(self):
        policy = SyncPolicy()
        assert policy.allow_delete is False
        assert policy.continue_on_error is False
        assert policy.create_merge is False


class TestCancellationToken:
    """Test CancellationToken."""

    def test_cancel(self):
        token = CancellationToken()
        assert not token.is_cancelled
        token.cancel()
        assert token.is_cancelled


class TestSchemaReconcilerApply:
    """Test SchemaReconciler.apply."""

    @pytest.mark.asyncio
    async def test_scenario_with_delete_allowed(self, source_snapshot, target_snapshot, recording_writer):
        """Modified and added objects are written, extra ones deleted, in order."""
        differences = map_snapshot_differences(source_snapshot, target_snapshot).all_differences
        reconciler = SchemaReconciler(recording_writer)

        result = await reconciler.apply(differences, SyncPolicy(allow_delete=True))

        assert recording_writer.calls == [
            ("create_or_alter", "T1"),
            ("create_or_alter", "T2"),
            ("delete", "T3"),
        ]
        assert result.status == SyncStatus.SUCCESS
        assert result.items_synchronized == 3

    @pytest.mark.asyncio
    async def test_delete_not_allowed_never_deletes(self, source_snapshot, target_snapshot, recording_writer):
        differences = map_snapshot_differences(source_snapshot, target_snapshot).all_differences
        reconciler = SchemaReconciler(recording_writer)

        result = await reconciler.apply(differences, SyncPolicy(allow_delete=False))

        assert ("delete", "T3") not in recording_writer.calls
        assert recording_writer.calls == [("create_or_alter", "T1"), ("create_or_alter", "T2")]
        assert [d.name for d in result.skipped] == ["T3"]
        assert result.success

    @pytest.mark.asyncio
    async def test_default_policy_does_not_delete(self, recording_writer):
        reconciler = SchemaReconciler(recording_writer)
        await reconciler.apply(_differences((DifferenceKind.ONLY_IN_TARGET, "x")))
        assert recording_writer.calls == []

    @pytest.mark.asyncio
    async def test_writer_receives_policy(self):
        writer = MagicMock()
        writer.create_or_alter = AsyncMock()
        policy = SyncPolicy(create_merge=True)
        differences = _differences((DifferenceKind.MODIFIED, "t"))

        await SchemaReconciler(writer).apply(differences, policy)

        writer.create_or_alter.assert_awaited_once_with(differences[0].object, policy)

    @pytest.mark.asyncio
    async def test_delete_receives_kind_and_name(self):
        writer = MagicMock()
        writer.delete = AsyncMock()
        differences = [SchemaDifference(DifferenceKind.ONLY_IN_TARGET, make_function("f"))]

        await SchemaReconciler(writer).apply(differences, SyncPolicy(allow_delete=True))

        writer.delete.assert_awaited_once_with(ObjectKind.FUNCTION, "f")

    @pytest.mark.asyncio
    async def test_empty_selection(self, recording_writer):
        result = await SchemaReconciler(recording_writer).apply([])

        assert result.success
        assert result.total == 0
        assert recording_writer.calls == []

    @pytest.mark.asyncio
    async def test_execution_time_recorded(self, recording_writer):
        result = await SchemaReconciler(recording_writer).apply(_differences(*THREE_CREATES))
        assert result.execution_time_ms >= 0


class TestSchemaReconcilerFailures:
    """Test fail-fast and continue-on-error behaviour."""

    @pytest.mark.asyncio
    async def test_failure_stops_remaining_items(self):
        """If #2 of 3 fails, #3 is never attempted."""
        error = RuntimeError("boom")
        writer = RecordingWriter(fail_on="b", error=error)
        differences = _differences(*THREE_CREATES)

        with pytest.raises(SyncError) as exc_info:
            await SchemaReconciler(writer).apply(differences)

        assert writer.calls == [("create_or_alter", "a"), ("create_or_alter", "b")]
        sync_error = exc_info.value
        assert sync_error.cause is error
        assert sync_error.__cause__ is error
        assert sync_error.index == 1
        assert sync_error.applied == 1
        assert sync_error.difference is differences[1]
        assert [d.name for d in sync_error.remaining] == ["b", "c"]

    @pytest.mark.asyncio
    async def test_sync_error_from_writer_propagates_unchanged(self):
        original = SyncError("already wrapped")
        writer = RecordingWriter(fail_on="a", error=original)

        with pytest.raises(SyncError) as exc_info:
            await SchemaReconciler(writer).apply(_differences(*THREE_CREATES))

        assert exc_info.value is original

    @pytest.mark.asyncio
    async def test_cancelled_error_propagates_unchanged(self):
        writer = RecordingWriter(fail_on="a", error=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await SchemaReconciler(writer).apply(_differences(*THREE_CREATES))

    @pytest.mark.asyncio
    async def test_continue_on_error_collects_failures(self):
        writer = RecordingWriter(fail_on="b")
        policy = SyncPolicy(continue_on_error=True)

        result = await SchemaReconciler(writer).apply(_differences(*THREE_CREATES), policy)

        assert [name for _, name in writer.calls] == ["a", "b", "c"]
        assert result.status == SyncStatus.PARTIAL
        assert [d.name for d in result.applied] == ["a", "c"]
        assert len(result.failures) == 1
        assert result.failures[0].index == 1
        assert result.errors == ["table:b: write failed"]

    @pytest.mark.asyncio
    async def test_continue_on_error_all_failed(self):
        writer = MagicMock()
        writer.create_or_alter = AsyncMock(side_effect=RuntimeError("down"))
        policy = SyncPolicy(continue_on_error=True)

        result = await SchemaReconciler(writer).apply(_differences(*THREE_CREATES), policy)

        assert result.status == SyncStatus.FAILED
        assert len(result.failures) == 3

    @pytest.mark.asyncio
    async def test_unknown_object_kind_is_not_wrapped(self, recording_writer):
        difference = MagicMock()
        difference.object_kind = "view"
        difference.name = "v"

        with pytest.raises(UnknownObjectKindError):
            await SchemaReconciler(recording_writer).apply(
                [difference], SyncPolicy(continue_on_error=True)
            )
        assert recording_writer.calls == []


class TestSchemaReconcilerCancellation:
    """Test cooperative cancellation."""

    @pytest.mark.asyncio
    async def test_cancelled_before_first_item(self, recording_writer):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(SyncCancelledError) as exc_info:
            await SchemaReconciler(recording_writer).apply(
                _differences(*THREE_CREATES), cancellation=token
            )

        assert recording_writer.calls == []
        assert exc_info.value.applied == 0
        assert len(exc_info.value.remaining) == 3

    @pytest.mark.asyncio
    async def test_cancelled_mid_run(self):
        token = CancellationToken()
        calls = []

        async def create_or_alter(obj, policy):
            calls.append(obj.name)
            if obj.name == "a":
                token.cancel()

        writer = MagicMock()
        writer.create_or_alter = create_or_alter

        with pytest.raises(SyncCancelledError) as exc_info:
            await SchemaReconciler(writer).apply(_differences(*THREE_CREATES), cancellation=token)

        assert calls == ["a"]
        assert exc_info.value.applied == 1


class TestSchemaReconcilerProgress:
    """Test progress reporting."""

    @pytest.mark.asyncio
    async def test_progress_reports(self, recording_writer):
        reports = []

        await SchemaReconciler(recording_writer).apply(
            _differences(*THREE_CREATES), progress=reports.append
        )

        assert reports[0].percent_complete == 0
        assert reports[-1].stage == SyncProgressStage.COMPLETE
        assert reports[-1].percent_complete == 100
        assert any("b" in report.message for report in reports)
        assert all(
            report.stage in (SyncProgressStage.SYNCHRONIZING_SCHEMAS, SyncProgressStage.COMPLETE)
            for report in reports
        )

    @pytest.mark.asyncio
    async def test_runs_are_serialized(self):
        """Two concurrent runs on one reconciler never interleave writes."""
        events = []

        async def create_or_alter(obj, policy):
            events.append(("start", obj.name))
            await asyncio.sleep(0)
            events.append(("end", obj.name))

        writer = MagicMock()
        writer.create_or_alter = create_or_alter
        reconciler = SchemaReconciler(writer)

        await asyncio.gather(
            reconciler.apply(_differences((DifferenceKind.MODIFIED, "a"))),
            reconciler.apply(_differences((DifferenceKind.MODIFIED, "b"))),
        )

        assert events == [("start", "a"), ("end", "a"), ("start", "b"), ("end", "b")]


class TestSchemaReconcilerConvergence:
    """Applying creates and alters brings the target up to the source."""

    @staticmethod
    def _creates_and_alters(result):
        return [
            d for d in result.all_differences
            if d.kind in (DifferenceKind.ONLY_IN_SOURCE, DifferenceKind.MODIFIED)
        ]

    @pytest.mark.asyncio
    async def test_no_creates_or_alters_left(self, source_snapshot, target_snapshot):
        target = InMemorySchemaRepository.from_snapshot(target_snapshot)
        differences = self._creates_and_alters(
            map_snapshot_differences(source_snapshot, target_snapshot)
        )

        result = await SchemaReconciler(target).apply(differences)

        assert result.status == SyncStatus.SUCCESS
        after = map_snapshot_differences(source_snapshot, await target.get_snapshot())
        assert self._creates_and_alters(after) == []
        assert [(d.kind, d.name) for d in after.all_differences] == [
            (DifferenceKind.ONLY_IN_TARGET, "T3"),
        ]

    @pytest.mark.asyncio
    async def test_converges_for_mixed_kinds(self):
        source = SchemaSnapshot.from_objects([
            make_table("orders", "id integer", "total numeric", docstring="Orders"),
            make_table("customers", "id integer", folder="crm"),
            make_function("top_customers", "SELECT 2"),
            make_function("new_report", "SELECT 3"),
        ])
        target = SchemaSnapshot.from_objects([
            make_table("orders", "id integer"),
            make_table("customers", "id integer"),
            make_function("top_customers", "SELECT 1"),
            make_function("legacy", "SELECT 0"),
        ])
        repository = InMemorySchemaRepository.from_snapshot(target)

        await SchemaReconciler(repository).apply(
            self._creates_and_alters(map_snapshot_differences(source, target))
        )

        after = map_snapshot_differences(source, await repository.get_snapshot())
        assert self._creates_and_alters(after) == []
        assert [d.name for d in after.all_differences] == ["legacy"]
