"""Vendor pipeline: vendor records and their validated status transitions.

Every status mutation goes through ``transition``, which checks the edge
against the transition table and then writes the new status, the audit
fields, the cumulative notes and the history entry as one conditional update
guarded on the status that was read. A concurrent writer that moved the
vendor first makes the guarded write fail instead of silently overwriting.
"""

import logging
from collections.abc import Awaitable, Callable, Collection, Iterable

from evaluator.config import EvaluatorConfig, load_evaluator_config
from evaluator.domains.vendors.models import VENDORS_TABLE, PipelineSummary, StatusChange, Vendor
from evaluator.domains.vendors.statuses import (
    PIPELINE_STAGES,
    VendorStatus,
    parse_status,
    status_label,
    valid_transitions,
)
from evaluator.errors import ConflictError, InvalidTransitionError, NotFoundError, StaleStatusError
from evaluator.store import RecordStore, logs_store_failures
from evaluator.utils.types import Clock, require_id, utcnow

logger = logging.getLogger(__name__)

type TransitionListener = Callable[[StatusChange], Awaitable[None]]

EDITABLE_FIELDS = frozenset({"name", "description", "website", "notes", "portal_enabled"})
ORDERABLE_FIELDS = frozenset({"name", "status", "created_at", "updated_at", "status_changed_at"})


def _status_note(label: str, note: str | None, when: str) -> str:
    line = f"[{when}] Status changed to {label}"
    return f"{line}: {note}" if note else line


class VendorPipeline:
    def __init__(
        self,
        store: RecordStore,
        config: EvaluatorConfig | None = None,
        listeners: Iterable[TransitionListener] = (),
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.config = config or load_evaluator_config("development")
        self._listeners = list(listeners)
        self._clock = clock

    def add_listener(self, listener: TransitionListener) -> None:
        """Register a coroutine called after each confirmed status change."""
        self._listeners.append(listener)

    # -- records ---------------------------------------------------------

    @logs_store_failures
    async def create_vendor(
        self,
        evaluation_project_id: str,
        name: str,
        *,
        description: str | None = None,
        website: str | None = None,
        notes: str | None = None,
        created_by: str | None = None,
    ) -> Vendor:
        project_id = require_id(evaluation_project_id, "evaluation_project_id")
        if not name or not name.strip():
            raise ValueError("name is required")

        now = self._clock()
        record = await self.store.insert(VENDORS_TABLE, {
            "evaluation_project_id": project_id,
            "name": name.strip(),
            "description": description,
            "website": website,
            "notes": notes,
            "status": str(VendorStatus.IDENTIFIED),
            "status_changed_at": now,
            "status_changed_by": created_by,
            "status_history": [],
            "portal_enabled": False,
            "primary_contact_id": None,
            "is_deleted": False,
            "created_at": now,
            "updated_at": now,
        })
        logger.info("Created vendor %s (%s) in project %s", record["id"], record["name"], project_id)
        return Vendor.from_record(record)

    @logs_store_failures
    async def get_vendor(self, vendor_id: str) -> Vendor:
        """Load a live vendor; deleted vendors are reported as not found."""
        record = await self.store.get(VENDORS_TABLE, require_id(vendor_id, "vendor_id"))
        if record is None or record.get("is_deleted"):
            raise NotFoundError("vendor", vendor_id)
        return Vendor.from_record(record)

    @logs_store_failures
    async def list_vendors(
        self,
        evaluation_project_id: str,
        *,
        status: str | VendorStatus | Collection[str | VendorStatus] | None = None,
        search: str | None = None,
        order_by: str = "name",
        ascending: bool = True,
    ) -> list[Vendor]:
        where: dict = {
            "evaluation_project_id": require_id(evaluation_project_id, "evaluation_project_id"),
            "is_deleted": False,
        }
        match status:
            case None:
                pass
            case str():
                where["status"] = str(parse_status(status))
            case _:
                where["status"] = tuple(str(parse_status(s)) for s in status)

        if order_by not in ORDERABLE_FIELDS:
            raise ValueError(f"Cannot order vendors by: {order_by}")

        records = await self.store.query(VENDORS_TABLE, where)
        if search:
            needle = search.casefold()
            records = [
                r for r in records
                if needle in (r.get("name") or "").casefold()
                or needle in (r.get("description") or "").casefold()
            ]

        # missing values sort before present ones when ascending
        records.sort(
            key=lambda r: (r.get(order_by) is not None, r.get(order_by) or ""),
            reverse=not ascending,
        )
        return [Vendor.from_record(r) for r in records]

    @logs_store_failures
    async def update_vendor(self, vendor_id: str, **changes) -> Vendor:
        """Edit descriptive fields; status only moves through ``transition``."""
        if "status" in changes:
            raise ValueError("status can only be changed through transition()")
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")
        if "name" in changes:
            if not (changes["name"] or "").strip():
                raise ValueError("name is required")
            changes["name"] = changes["name"].strip()

        try:
            record = await self.store.update(
                VENDORS_TABLE,
                require_id(vendor_id, "vendor_id"),
                {**changes, "updated_at": self._clock()},
                expected={"is_deleted": False},
            )
        except ConflictError:
            raise NotFoundError("vendor", vendor_id) from None
        if record is None:
            raise NotFoundError("vendor", vendor_id)
        return Vendor.from_record(record)

    # -- status management -----------------------------------------------

    def valid_transitions(self, from_status: str | VendorStatus) -> frozenset[VendorStatus]:
        return valid_transitions(from_status)

    @logs_store_failures
    async def transition(
        self,
        vendor_id: str,
        to_status: str | VendorStatus,
        actor_id: str,
        note: str | None = None,
    ) -> Vendor:
        """Move a vendor along one permitted edge of the lifecycle."""
        actor_id = require_id(actor_id, "actor_id")
        target = parse_status(to_status)
        current = await self.get_vendor(vendor_id)

        if target not in valid_transitions(current.status):
            logger.warning(
                "Rejected transition of vendor %s: %s -> %s", vendor_id, current.status, target,
            )
            raise InvalidTransitionError(current.status, target)

        now = self._clock()
        change = StatusChange(
            vendor_id=vendor_id,
            from_status=current.status,
            to_status=target,
            changed_by=actor_id,
            changed_at=now,
            note=note,
        )
        entry = _status_note(status_label(target), note, now.strftime(self.config.date_format))
        notes = f"{current.notes}\n\n{entry}" if current.notes else entry
        history = [c.to_record() for c in current.status_history] + [change.to_record()]

        try:
            record = await self.store.update(
                VENDORS_TABLE,
                vendor_id,
                {
                    "status": str(target),
                    "status_changed_at": now,
                    "status_changed_by": actor_id,
                    "notes": notes,
                    "status_history": history,
                    "updated_at": now,
                },
                expected={"status": str(current.status), "is_deleted": False},
            )
        except ConflictError as exc:
            if exc.actual.get("is_deleted"):
                raise NotFoundError("vendor", vendor_id) from exc
            logger.warning("Vendor %s changed concurrently: %s", vendor_id, exc)
            raise StaleStatusError(vendor_id, current.status, target) from exc

        if record is None:
            raise NotFoundError("vendor", vendor_id)

        logger.info("Vendor %s moved %s -> %s by %s", vendor_id, current.status, target, actor_id)
        await self._notify(change)
        return Vendor.from_record(record)

    async def _notify(self, change: StatusChange) -> None:
        # The write is already confirmed; a failing listener must not undo it.
        for listener in self._listeners:
            try:
                await listener(change)
            except Exception as exc:
                logger.error("Transition listener failed for vendor %s: %s", change.vendor_id, exc)

    async def add_to_long_list(self, vendor_id: str, actor_id: str) -> Vendor:
        return await self.transition(vendor_id, VendorStatus.LONG_LIST, actor_id)

    async def add_to_short_list(self, vendor_id: str, actor_id: str) -> Vendor:
        return await self.transition(vendor_id, VendorStatus.SHORT_LIST, actor_id)

    async def mark_rfp_issued(self, vendor_id: str, actor_id: str) -> Vendor:
        return await self.transition(vendor_id, VendorStatus.RFP_ISSUED, actor_id)

    async def mark_response_received(self, vendor_id: str, actor_id: str) -> Vendor:
        return await self.transition(vendor_id, VendorStatus.RESPONSE_RECEIVED, actor_id)

    async def start_evaluation(self, vendor_id: str, actor_id: str) -> Vendor:
        return await self.transition(vendor_id, VendorStatus.UNDER_EVALUATION, actor_id)

    async def select_vendor(self, vendor_id: str, actor_id: str, note: str | None = None) -> Vendor:
        return await self.transition(vendor_id, VendorStatus.SELECTED, actor_id, note)

    async def reject_vendor(self, vendor_id: str, actor_id: str, reason: str | None = None) -> Vendor:
        return await self.transition(vendor_id, VendorStatus.REJECTED, actor_id, reason)

    async def reactivate_vendor(self, vendor_id: str, actor_id: str, note: str | None = None) -> Vendor:
        return await self.transition(vendor_id, VendorStatus.IDENTIFIED, actor_id, note)

    # -- soft delete -----------------------------------------------------

    @logs_store_failures
    async def delete_vendor(self, vendor_id: str, actor_id: str | None = None) -> None:
        """Tombstone a vendor; it keeps its history but leaves default queries."""
        await self.get_vendor(vendor_id)
        now = self._clock()
        try:
            await self.store.update(
                VENDORS_TABLE,
                vendor_id,
                {"is_deleted": True, "deleted_at": now, "deleted_by": actor_id, "updated_at": now},
                expected={"is_deleted": False},
            )
        except ConflictError:
            raise NotFoundError("vendor", vendor_id) from None
        logger.info("Soft-deleted vendor %s", vendor_id)

    @logs_store_failures
    async def restore_vendor(self, vendor_id: str) -> Vendor:
        record = await self.store.get(VENDORS_TABLE, require_id(vendor_id, "vendor_id"))
        if record is None:
            raise NotFoundError("vendor", vendor_id)
        if not record.get("is_deleted"):
            return Vendor.from_record(record)

        record = await self.store.update(
            VENDORS_TABLE,
            vendor_id,
            {"is_deleted": False, "deleted_at": None, "deleted_by": None, "updated_at": self._clock()},
        )
        logger.info("Restored vendor %s", vendor_id)
        return Vendor.from_record(record)

    async def get_recent(self, evaluation_project_id: str, limit: int = 5) -> list[Vendor]:
        """Most recently updated live vendors."""
        vendors = await self.list_vendors(evaluation_project_id, order_by="updated_at", ascending=False)
        return vendors[:limit]

    @logs_store_failures
    async def list_deleted(self, evaluation_project_id: str) -> list[Vendor]:
        records = await self.store.query(VENDORS_TABLE, {
            "evaluation_project_id": require_id(evaluation_project_id, "evaluation_project_id"),
            "is_deleted": True,
        })
        return [Vendor.from_record(r) for r in records]

    # -- pipeline views --------------------------------------------------

    @logs_store_failures
    async def group_by_stage(self, evaluation_project_id: str) -> dict[VendorStatus, list[Vendor]]:
        """Vendors grouped by status, with every status present."""
        grouped: dict[VendorStatus, list[Vendor]] = {status: [] for status in VendorStatus}
        for vendor in await self.list_vendors(evaluation_project_id):
            grouped[vendor.status].append(vendor)
        return grouped

    @logs_store_failures
    async def summarize(self, evaluation_project_id: str) -> PipelineSummary:
        vendors = await self.list_vendors(evaluation_project_id)
        by_status = {status: 0 for status in VendorStatus}
        for vendor in vendors:
            by_status[vendor.status] += 1

        return PipelineSummary(
            total=len(vendors),
            by_status=by_status,
            in_pipeline=sum(by_status[s] for s in PIPELINE_STAGES),
            shortlisted=by_status[VendorStatus.SHORT_LIST],
            awaiting_response=by_status[VendorStatus.RFP_ISSUED],
            under_evaluation=by_status[VendorStatus.UNDER_EVALUATION],
            selected=by_status[VendorStatus.SELECTED],
            rejected=by_status[VendorStatus.REJECTED],
            portal_enabled=sum(1 for v in vendors if v.portal_enabled),
        )
