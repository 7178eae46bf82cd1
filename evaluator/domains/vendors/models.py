"""Vendor records and the pandera schema for vendor report exports."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pandera import Column, Check, DataFrameSchema

from evaluator.domains.vendors.statuses import PIPELINE_STAGES, VendorStatus

VENDORS_TABLE = "vendors"
CONTACTS_TABLE = "vendor_contacts"


@dataclass(frozen=True)
class StatusChange:
    vendor_id: str
    from_status: VendorStatus
    to_status: VendorStatus
    changed_by: str
    changed_at: datetime
    note: str | None = None

    @classmethod
    def from_record(cls, vendor_id: str, record: dict[str, Any]) -> "StatusChange":
        return cls(
            vendor_id=vendor_id,
            from_status=VendorStatus(record["from_status"]),
            to_status=VendorStatus(record["to_status"]),
            changed_by=record["changed_by"],
            changed_at=record["changed_at"],
            note=record.get("note"),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "from_status": str(self.from_status),
            "to_status": str(self.to_status),
            "changed_by": self.changed_by,
            "changed_at": self.changed_at,
            "note": self.note,
        }


@dataclass(frozen=True)
class Vendor:
    id: str
    evaluation_project_id: str
    name: str
    status: VendorStatus
    status_changed_at: datetime | None = None
    status_changed_by: str | None = None
    description: str | None = None
    website: str | None = None
    notes: str | None = None
    portal_enabled: bool = False
    primary_contact_id: str | None = None
    status_history: tuple[StatusChange, ...] = ()
    is_deleted: bool = False
    deleted_at: datetime | None = None
    deleted_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Vendor":
        return cls(
            id=record["id"],
            evaluation_project_id=record["evaluation_project_id"],
            name=record["name"],
            status=VendorStatus(record["status"]),
            status_changed_at=record.get("status_changed_at"),
            status_changed_by=record.get("status_changed_by"),
            description=record.get("description"),
            website=record.get("website"),
            notes=record.get("notes"),
            portal_enabled=bool(record.get("portal_enabled", False)),
            primary_contact_id=record.get("primary_contact_id"),
            status_history=tuple(
                StatusChange.from_record(record["id"], entry)
                for entry in record.get("status_history") or []
            ),
            is_deleted=bool(record.get("is_deleted", False)),
            deleted_at=record.get("deleted_at"),
            deleted_by=record.get("deleted_by"),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status not in PIPELINE_STAGES


@dataclass(frozen=True)
class VendorContact:
    id: str
    vendor_id: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    job_title: str | None = None
    user_id: str | None = None
    is_primary: bool = False
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "VendorContact":
        return cls(
            id=record["id"],
            vendor_id=record["vendor_id"],
            name=record.get("name"),
            email=record.get("email"),
            phone=record.get("phone"),
            job_title=record.get("job_title"),
            user_id=record.get("user_id"),
            is_primary=bool(record.get("is_primary", False)),
            created_at=record.get("created_at"),
        )


@dataclass(frozen=True)
class PipelineSummary:
    total: int
    by_status: dict[VendorStatus, int] = field(default_factory=dict)
    in_pipeline: int = 0
    shortlisted: int = 0
    awaiting_response: int = 0
    under_evaluation: int = 0
    selected: int = 0
    rejected: int = 0
    portal_enabled: int = 0


# Schema for the flat vendor report export
VENDOR_EXPORT_SCHEMA = DataFrameSchema(
    columns={
        "vendor_id": Column(str, nullable=False, unique=True),
        "name": Column(str, checks=Check.str_length(min_value=1), nullable=False),
        "description": Column(str, nullable=False),
        "website": Column(str, nullable=False),
        "status": Column(str, checks=Check.isin([s.value for s in VendorStatus]), nullable=False),
        "status_label": Column(str, nullable=False),
        "portal_enabled": Column(str, checks=Check.isin(["Yes", "No"]), nullable=False),
        "created_at": Column(str, nullable=False),
        "updated_at": Column(str, nullable=False),
    },
    coerce=True,
    strict=False,
)
