"""
Tests for vendor contacts and the single primary contact.
"""

import pytest

from evaluator.errors import NotFoundError

from tests.conftest import PROJECT_ID


class TestAddContact:
    """Contacts need a way to reach them."""

    @pytest.mark.asyncio
    async def test_add_contact(self, contacts, vendor):
        contact = await contacts.add_contact(
            vendor.id, name="Dana Reyes", email="dana@acme.example.com", job_title="Account Manager",
        )
        assert contact.vendor_id == vendor.id
        assert contact.job_title == "Account Manager"
        assert not contact.is_primary

    @pytest.mark.asyncio
    async def test_email_alone_is_enough(self, contacts, vendor):
        contact = await contacts.add_contact(vendor.id, email="sales@acme.example.com")
        assert contact.name is None

    @pytest.mark.asyncio
    async def test_name_or_email_required(self, contacts, vendor):
        with pytest.raises(ValueError, match="name or an email"):
            await contacts.add_contact(vendor.id, name="  ", phone="555-0100")

    @pytest.mark.asyncio
    async def test_deleted_vendor(self, pipeline, contacts, vendor):
        await pipeline.delete_vendor(vendor.id)
        with pytest.raises(NotFoundError):
            await contacts.add_contact(vendor.id, name="Dana")


class TestPrimaryContact:
    """A vendor has at most one primary contact."""

    @pytest.mark.asyncio
    async def test_adding_primary_replaces_previous(self, contacts, vendor):
        first = await contacts.add_contact(vendor.id, name="Dana", is_primary=True)
        second = await contacts.add_contact(vendor.id, name="Eli", is_primary=True)

        listed = await contacts.list_contacts(vendor.id)
        assert [c.id for c in listed if c.is_primary] == [second.id]
        assert listed[0].id == second.id
        assert (await contacts.get_primary_contact(vendor.id)).id == second.id
        assert first.id in {c.id for c in listed}

    @pytest.mark.asyncio
    async def test_set_primary(self, contacts, vendor):
        dana = await contacts.add_contact(vendor.id, name="Dana", is_primary=True)
        eli = await contacts.add_contact(vendor.id, name="Eli")

        promoted = await contacts.set_primary_contact(vendor.id, eli.id)

        assert promoted.is_primary
        primaries = [c.id for c in await contacts.list_contacts(vendor.id) if c.is_primary]
        assert primaries == [eli.id]
        assert dana.id not in primaries

    @pytest.mark.asyncio
    async def test_set_primary_from_another_vendor(self, pipeline, contacts, vendor):
        other = await pipeline.create_vendor(PROJECT_ID, "Globex")
        stranger = await contacts.add_contact(other.id, name="Sam")

        with pytest.raises(NotFoundError):
            await contacts.set_primary_contact(vendor.id, stranger.id)
        assert await contacts.get_primary_contact(vendor.id) is None

    @pytest.mark.asyncio
    async def test_update_promotes_and_demotes(self, contacts, vendor):
        dana = await contacts.add_contact(vendor.id, name="Dana")

        promoted = await contacts.update_contact(dana.id, is_primary=True, phone="555-0100")
        assert promoted.is_primary
        assert promoted.phone == "555-0100"

        demoted = await contacts.update_contact(dana.id, is_primary=False)
        assert not demoted.is_primary
        assert await contacts.get_primary_contact(vendor.id) is None

    @pytest.mark.asyncio
    async def test_removing_primary_clears_it(self, contacts, vendor):
        dana = await contacts.add_contact(vendor.id, name="Dana", is_primary=True)
        await contacts.remove_contact(dana.id)

        assert await contacts.list_contacts(vendor.id) == []
        assert await contacts.get_primary_contact(vendor.id) is None
        with pytest.raises(NotFoundError):
            await contacts.remove_contact(dana.id)


class TestUpdateContact:
    @pytest.mark.asyncio
    async def test_cannot_blank_out_contact(self, contacts, vendor):
        dana = await contacts.add_contact(vendor.id, name="Dana")
        with pytest.raises(ValueError, match="name or an email"):
            await contacts.update_contact(dana.id, name="")

    @pytest.mark.asyncio
    async def test_rejects_unknown_fields(self, contacts, vendor):
        dana = await contacts.add_contact(vendor.id, name="Dana")
        with pytest.raises(ValueError, match="cannot be updated"):
            await contacts.update_contact(dana.id, vendor_id="elsewhere")

    @pytest.mark.asyncio
    async def test_list_order(self, contacts, vendor):
        dana = await contacts.add_contact(vendor.id, name="Dana")
        eli = await contacts.add_contact(vendor.id, name="Eli")
        fay = await contacts.add_contact(vendor.id, name="Fay", is_primary=True)

        assert [c.id for c in await contacts.list_contacts(vendor.id)] == [fay.id, dana.id, eli.id]


class TestRecentVendors:
    @pytest.mark.asyncio
    async def test_get_recent(self, pipeline, vendor):
        older = await pipeline.create_vendor(PROJECT_ID, "Globex")
        await pipeline.create_vendor(PROJECT_ID, "Initech")
        await pipeline.update_vendor(vendor.id, website="https://acme.example.com")

        recent = await pipeline.get_recent(PROJECT_ID, limit=2)
        assert [v.name for v in recent] == ["Acme CRM", "Initech"]
        assert older.id not in {v.id for v in recent}
