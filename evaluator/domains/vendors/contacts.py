"""Contact people held against a vendor.

The primary contact is stored on the vendor record as ``primary_contact_id``
rather than as a flag on each contact, so a vendor never has more than one
primary however its contacts are edited.
"""

import logging

from evaluator.domains.vendors.models import CONTACTS_TABLE, VENDORS_TABLE, Vendor, VendorContact
from evaluator.domains.vendors.pipeline import VendorPipeline
from evaluator.errors import ConflictError, NotFoundError
from evaluator.store import logs_store_failures
from evaluator.utils.types import Clock, require_id, utcnow

logger = logging.getLogger(__name__)

CONTACT_FIELDS = frozenset({"name", "email", "phone", "job_title"})


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _check_reachable(record: dict) -> None:
    if not record.get("name") and not record.get("email"):
        raise ValueError("A contact needs at least a name or an email")


class VendorContacts:
    def __init__(self, pipeline: VendorPipeline, clock: Clock = utcnow) -> None:
        self.pipeline = pipeline
        self.store = pipeline.store
        self._clock = clock

    def _contact(self, record: dict, vendor: Vendor) -> VendorContact:
        return VendorContact.from_record({**record, "is_primary": record["id"] == vendor.primary_contact_id})

    async def _load(self, contact_id: str) -> tuple[dict, Vendor]:
        record = await self.store.get(CONTACTS_TABLE, require_id(contact_id, "contact_id"))
        if record is None:
            raise NotFoundError("contact", contact_id)
        return record, await self.pipeline.get_vendor(record["vendor_id"])

    async def _set_primary(self, vendor_id: str, contact_id: str | None) -> None:
        try:
            record = await self.store.update(
                VENDORS_TABLE,
                vendor_id,
                {"primary_contact_id": contact_id, "updated_at": self._clock()},
                expected={"is_deleted": False},
            )
        except ConflictError:
            raise NotFoundError("vendor", vendor_id) from None
        if record is None:
            raise NotFoundError("vendor", vendor_id)

    @logs_store_failures
    async def list_contacts(self, vendor_id: str) -> list[VendorContact]:
        """Contacts for a vendor, primary first, then oldest first."""
        vendor = await self.pipeline.get_vendor(vendor_id)
        records = await self.store.query(CONTACTS_TABLE, {"vendor_id": vendor.id})
        contacts = [self._contact(r, vendor) for r in records]
        return sorted(contacts, key=lambda c: (not c.is_primary, c.created_at))

    @logs_store_failures
    async def get_primary_contact(self, vendor_id: str) -> VendorContact | None:
        vendor = await self.pipeline.get_vendor(vendor_id)
        if vendor.primary_contact_id is None:
            return None
        record = await self.store.get(CONTACTS_TABLE, vendor.primary_contact_id)
        return self._contact(record, vendor) if record else None

    @logs_store_failures
    async def add_contact(
        self,
        vendor_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        job_title: str | None = None,
        user_id: str | None = None,
        is_primary: bool = False,
    ) -> VendorContact:
        fields = {
            "name": _clean(name),
            "email": _clean(email),
            "phone": _clean(phone),
            "job_title": _clean(job_title),
        }
        _check_reachable(fields)
        vendor = await self.pipeline.get_vendor(vendor_id)

        record = await self.store.insert(CONTACTS_TABLE, {
            "vendor_id": vendor.id,
            "user_id": user_id,
            "created_at": self._clock(),
            **fields,
        })
        if is_primary:
            await self._set_primary(vendor.id, record["id"])
            vendor = await self.pipeline.get_vendor(vendor.id)

        logger.info("Added contact %s to vendor %s", record["id"], vendor.id)
        return self._contact(record, vendor)

    @logs_store_failures
    async def update_contact(self, contact_id: str, **changes) -> VendorContact:
        """Edit a contact's details; ``is_primary`` promotes or demotes it."""
        is_primary = changes.pop("is_primary", None)
        unknown = set(changes) - CONTACT_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")
        changes = {field: _clean(value) for field, value in changes.items()}

        current, vendor = await self._load(contact_id)
        _check_reachable({**current, **changes})

        record = current
        if changes:
            record = await self.store.update(CONTACTS_TABLE, contact_id, changes)
            if record is None:
                raise NotFoundError("contact", contact_id)

        match is_primary:
            case True if vendor.primary_contact_id != contact_id:
                await self._set_primary(vendor.id, contact_id)
            case False if vendor.primary_contact_id == contact_id:
                await self._set_primary(vendor.id, None)
            case _:
                pass

        vendor = await self.pipeline.get_vendor(vendor.id)
        return self._contact(record, vendor)

    @logs_store_failures
    async def set_primary_contact(self, vendor_id: str, contact_id: str) -> VendorContact:
        record, vendor = await self._load(contact_id)
        if record["vendor_id"] != vendor_id:
            raise NotFoundError("contact", contact_id)

        await self._set_primary(vendor.id, contact_id)
        logger.info("Contact %s is now primary for vendor %s", contact_id, vendor.id)
        return VendorContact.from_record({**record, "is_primary": True})

    @logs_store_failures
    async def remove_contact(self, contact_id: str) -> None:
        _, vendor = await self._load(contact_id)
        if vendor.primary_contact_id == contact_id:
            await self._set_primary(vendor.id, None)
        await self.store.delete(CONTACTS_TABLE, contact_id)
        logger.info("Removed contact %s from vendor %s", contact_id, vendor.id)
