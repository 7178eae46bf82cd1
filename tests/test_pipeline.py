"""
Tests for the vendor pipeline: records, status transitions and soft delete.
"""

import asyncio
import itertools
import logging

import pytest

from evaluator.domains.vendors import VendorPipeline, VendorStatus
from evaluator.domains.vendors.models import VENDORS_TABLE
from evaluator.domains.vendors.statuses import TRANSITIONS
from evaluator.errors import (
    InvalidTransitionError,
    NotFoundError,
    StaleStatusError,
    StoreUnavailableError,
)
from evaluator.store import InMemoryRecordStore

from tests.conftest import PROJECT_ID

S = VendorStatus

ILLEGAL_PAIRS = [
    (src, dst)
    for src, dst in itertools.product(VendorStatus, VendorStatus)
    if dst not in TRANSITIONS[src]
]


class YieldingStore(InMemoryRecordStore):
    """Hands control back to the loop after every read, so that two
    coroutines reading the same vendor interleave before either writes."""

    async def get(self, table, record_id):
        record = await super().get(table, record_id)
        await asyncio.sleep(0)
        return record


class TestVendorRecords:
    """Creating, reading and editing vendors."""

    @pytest.mark.asyncio
    async def test_create_starts_identified(self, vendor):
        assert vendor.status is S.IDENTIFIED
        assert vendor.evaluation_project_id == PROJECT_ID
        assert vendor.status_history == ()
        assert not vendor.portal_enabled

    @pytest.mark.asyncio
    async def test_create_requires_name(self, pipeline):
        with pytest.raises(ValueError, match="name is required"):
            await pipeline.create_vendor(PROJECT_ID, "   ")

    @pytest.mark.asyncio
    async def test_get_missing_vendor(self, pipeline):
        with pytest.raises(NotFoundError):
            await pipeline.get_vendor("nope")

    @pytest.mark.asyncio
    async def test_update_descriptive_fields(self, pipeline, vendor):
        updated = await pipeline.update_vendor(vendor.id, website="https://acme.example.com", name=" Acme ")
        assert updated.website == "https://acme.example.com"
        assert updated.name == "Acme"
        assert updated.status is S.IDENTIFIED

    @pytest.mark.asyncio
    async def test_update_cannot_change_status(self, pipeline, vendor):
        with pytest.raises(ValueError, match="transition"):
            await pipeline.update_vendor(vendor.id, status="selected")
        assert (await pipeline.get_vendor(vendor.id)).status is S.IDENTIFIED

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, pipeline, vendor):
        with pytest.raises(ValueError, match="cannot be updated"):
            await pipeline.update_vendor(vendor.id, evaluation_project_id="other")

    @pytest.mark.asyncio
    async def test_list_filters_and_search(self, pipeline):
        a = await pipeline.create_vendor(PROJECT_ID, "Beta Systems")
        b = await pipeline.create_vendor(PROJECT_ID, "Alpha Soft", description="billing platform")
        await pipeline.create_vendor("other-project", "Gamma")
        await pipeline.add_to_long_list(a.id, "u1")

        names = [v.name for v in await pipeline.list_vendors(PROJECT_ID)]
        assert names == ["Alpha Soft", "Beta Systems"]

        long_listed = await pipeline.list_vendors(PROJECT_ID, status="long_list")
        assert [v.id for v in long_listed] == [a.id]

        either = await pipeline.list_vendors(PROJECT_ID, status=[S.LONG_LIST, S.IDENTIFIED])
        assert {v.id for v in either} == {a.id, b.id}

        found = await pipeline.list_vendors(PROJECT_ID, search="BILLING")
        assert [v.id for v in found] == [b.id]

    @pytest.mark.asyncio
    async def test_list_rejects_unknown_order_field(self, pipeline):
        with pytest.raises(ValueError):
            await pipeline.list_vendors(PROJECT_ID, order_by="notes")


class TestTransitions:
    """Status moves go through the transition table."""

    @pytest.mark.asyncio
    async def test_end_to_end_illegal_skip(self, pipeline):
        """identified -> long_list succeeds, then long_list -> rfp_issued fails."""
        v1 = await pipeline.create_vendor(PROJECT_ID, "V1")

        moved = await pipeline.transition(v1.id, "long_list", "u1")
        assert moved.status is S.LONG_LIST

        with pytest.raises(InvalidTransitionError) as exc_info:
            await pipeline.transition(v1.id, "rfp_issued", "u1")
        assert exc_info.value.from_status == "long_list"
        assert exc_info.value.to_status == "rfp_issued"
        assert (await pipeline.get_vendor(v1.id)).status is S.LONG_LIST

    @pytest.mark.asyncio
    @pytest.mark.parametrize("src,dst", ILLEGAL_PAIRS)
    async def test_illegal_transition_leaves_vendor_untouched(self, store, pipeline, src, dst):
        vendor = await pipeline.create_vendor(PROJECT_ID, "Closure")
        await store.update(VENDORS_TABLE, vendor.id, {"status": str(src)})
        before = await store.get(VENDORS_TABLE, vendor.id)

        with pytest.raises(InvalidTransitionError):
            await pipeline.transition(vendor.id, dst, "u1")

        assert await store.get(VENDORS_TABLE, vendor.id) == before

    @pytest.mark.asyncio
    async def test_full_happy_path(self, pipeline, vendor):
        await pipeline.add_to_long_list(vendor.id, "u1")
        await pipeline.add_to_short_list(vendor.id, "u1")
        await pipeline.mark_rfp_issued(vendor.id, "u1")
        await pipeline.mark_response_received(vendor.id, "u2")
        await pipeline.start_evaluation(vendor.id, "u2")
        selected = await pipeline.select_vendor(vendor.id, "u3", note="Best value")

        assert selected.status is S.SELECTED
        assert selected.is_terminal
        assert selected.status_changed_by == "u3"
        assert [c.to_status for c in selected.status_history] == [
            S.LONG_LIST, S.SHORT_LIST, S.RFP_ISSUED, S.RESPONSE_RECEIVED, S.UNDER_EVALUATION, S.SELECTED,
        ]
        assert pipeline.valid_transitions(selected.status) == frozenset()

    @pytest.mark.asyncio
    async def test_reject_and_reactivate(self, pipeline, vendor):
        rejected = await pipeline.reject_vendor(vendor.id, "u1", reason="No SSO")
        assert rejected.status is S.REJECTED

        with pytest.raises(InvalidTransitionError):
            await pipeline.add_to_long_list(vendor.id, "u1")

        reactivated = await pipeline.reactivate_vendor(vendor.id, "u1")
        assert reactivated.status is S.IDENTIFIED

    @pytest.mark.asyncio
    async def test_notes_accumulate_with_dated_entries(self, pipeline, vendor):
        await pipeline.add_to_long_list(vendor.id, "u1")
        rejected = await pipeline.reject_vendor(vendor.id, "u1", reason="Too expensive")

        assert rejected.notes == (
            "[2026-03-02] Status changed to Long List"
            "\n\n"
            "[2026-03-02] Status changed to Rejected: Too expensive"
        )

    @pytest.mark.asyncio
    async def test_history_records_actor_and_note(self, pipeline, vendor):
        moved = await pipeline.transition(vendor.id, S.LONG_LIST, "u7", note="Met at expo")
        (change,) = moved.status_history
        assert change.from_status is S.IDENTIFIED
        assert change.to_status is S.LONG_LIST
        assert change.changed_by == "u7"
        assert change.note == "Met at expo"
        assert moved.status_changed_at == change.changed_at

    @pytest.mark.asyncio
    async def test_actor_is_required(self, pipeline, vendor):
        with pytest.raises(ValueError):
            await pipeline.transition(vendor.id, S.LONG_LIST, "")

    @pytest.mark.asyncio
    async def test_unknown_target_status(self, pipeline, vendor):
        with pytest.raises(ValueError, match="Unknown vendor status"):
            await pipeline.transition(vendor.id, "archived", "u1")

    @pytest.mark.asyncio
    async def test_concurrent_transitions_exactly_one_wins(self, config):
        """Two moves read the same status; the second guarded write loses."""
        pipeline = VendorPipeline(YieldingStore(), config)
        vendor = await pipeline.create_vendor(PROJECT_ID, "Racy")

        results = await asyncio.gather(
            pipeline.transition(vendor.id, S.LONG_LIST, "u1"),
            pipeline.transition(vendor.id, S.REJECTED, "u2"),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], StaleStatusError)

        final = await pipeline.get_vendor(vendor.id)
        assert final.status is winners[0].status
        assert len(final.status_history) == 1


class TestTransitionListeners:
    """Listeners observe confirmed changes only."""

    @pytest.mark.asyncio
    async def test_listener_receives_change(self, pipeline, vendor):
        seen = []

        async def record(change):
            seen.append(change)

        pipeline.add_listener(record)
        await pipeline.add_to_long_list(vendor.id, "u1")

        assert len(seen) == 1
        assert seen[0].vendor_id == vendor.id
        assert seen[0].to_status is S.LONG_LIST

    @pytest.mark.asyncio
    async def test_listener_not_called_for_rejected_move(self, pipeline, vendor):
        seen = []

        async def record(change):
            seen.append(change)

        pipeline.add_listener(record)
        with pytest.raises(InvalidTransitionError):
            await pipeline.select_vendor(vendor.id, "u1")
        assert seen == []

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_undo_transition(self, pipeline, vendor, caplog):
        async def broken(change):
            raise RuntimeError("mailer down")

        pipeline.add_listener(broken)
        with caplog.at_level(logging.ERROR):
            moved = await pipeline.add_to_long_list(vendor.id, "u1")

        assert moved.status is S.LONG_LIST
        assert (await pipeline.get_vendor(vendor.id)).status is S.LONG_LIST
        assert "mailer down" in caplog.text


class TestSoftDelete:
    """Deleted vendors leave default views but keep their data."""

    @pytest.mark.asyncio
    async def test_delete_hides_vendor(self, pipeline, vendor):
        await pipeline.delete_vendor(vendor.id, "u1")

        assert await pipeline.list_vendors(PROJECT_ID) == []
        with pytest.raises(NotFoundError):
            await pipeline.get_vendor(vendor.id)
        with pytest.raises(NotFoundError):
            await pipeline.add_to_long_list(vendor.id, "u1")

        deleted = await pipeline.list_deleted(PROJECT_ID)
        assert [v.id for v in deleted] == [vendor.id]
        assert deleted[0].deleted_by == "u1"

    @pytest.mark.asyncio
    async def test_restore(self, pipeline, vendor):
        await pipeline.delete_vendor(vendor.id)
        restored = await pipeline.restore_vendor(vendor.id)

        assert not restored.is_deleted
        assert (await pipeline.get_vendor(vendor.id)).name == "Acme CRM"

    @pytest.mark.asyncio
    async def test_delete_twice(self, pipeline, vendor):
        await pipeline.delete_vendor(vendor.id)
        with pytest.raises(NotFoundError):
            await pipeline.delete_vendor(vendor.id)


class TestPipelineViews:
    @pytest.mark.asyncio
    async def test_group_by_stage_includes_empty_stages(self, pipeline, vendor):
        await pipeline.add_to_long_list(vendor.id, "u1")
        grouped = await pipeline.group_by_stage(PROJECT_ID)

        assert set(grouped) == set(VendorStatus)
        assert [v.id for v in grouped[S.LONG_LIST]] == [vendor.id]
        assert grouped[S.IDENTIFIED] == []

    @pytest.mark.asyncio
    async def test_summarize(self, pipeline):
        a = await pipeline.create_vendor(PROJECT_ID, "A")
        b = await pipeline.create_vendor(PROJECT_ID, "B")
        await pipeline.create_vendor(PROJECT_ID, "C")
        await pipeline.add_to_long_list(a.id, "u1")
        await pipeline.add_to_short_list(a.id, "u1")
        await pipeline.reject_vendor(b.id, "u1")

        summary = await pipeline.summarize(PROJECT_ID)
        assert summary.total == 3
        assert summary.shortlisted == 1
        assert summary.rejected == 1
        assert summary.in_pipeline == 2
        assert summary.by_status[S.IDENTIFIED] == 1


class TestStoreFailures:
    @pytest.mark.asyncio
    async def test_store_unavailable_propagates(self, store, pipeline, vendor):
        store.close()
        with pytest.raises(StoreUnavailableError):
            await pipeline.add_to_long_list(vendor.id, "u1")

        store.reopen()
        assert (await pipeline.get_vendor(vendor.id)).status is S.IDENTIFIED

    @pytest.mark.asyncio
    async def test_store_failure_logged_once(self, store, pipeline, vendor, caplog):
        store.close()
        with caplog.at_level(logging.ERROR, logger="evaluator"):
            with pytest.raises(StoreUnavailableError):
                await pipeline.transition(vendor.id, VendorStatus.LONG_LIST, "u1")

        failures = [r for r in caplog.records if "record store unavailable" in r.getMessage()]
        assert len(failures) == 1
        assert failures[0].levelno == logging.ERROR

    @pytest.mark.asyncio
    @pytest.mark.parametrize("read", ["get_vendor", "list_vendors"])
    async def test_failed_reads_are_logged(self, store, pipeline, vendor, caplog, read):
        argument = vendor.id if read == "get_vendor" else PROJECT_ID
        store.close()
        with caplog.at_level(logging.ERROR, logger="evaluator"):
            with pytest.raises(StoreUnavailableError):
                await getattr(pipeline, read)(argument)

        failures = [r for r in caplog.records if "record store unavailable" in r.getMessage()]
        assert len(failures) == 1
        assert read in failures[0].getMessage()
