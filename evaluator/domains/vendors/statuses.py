"""Vendor lifecycle statuses and the table of permitted transitions."""

from dataclasses import dataclass
from enum import StrEnum


class VendorStatus(StrEnum):
    IDENTIFIED = "identified"
    LONG_LIST = "long_list"
    SHORT_LIST = "short_list"
    RFP_ISSUED = "rfp_issued"
    RESPONSE_RECEIVED = "response_received"
    UNDER_EVALUATION = "under_evaluation"
    SELECTED = "selected"
    REJECTED = "rejected"


@dataclass(frozen=True)
class StatusDisplay:
    label: str
    color: str
    description: str
    order: int


TRANSITIONS: dict[VendorStatus, frozenset[VendorStatus]] = {
    VendorStatus.IDENTIFIED: frozenset({VendorStatus.LONG_LIST, VendorStatus.REJECTED}),
    VendorStatus.LONG_LIST: frozenset({VendorStatus.SHORT_LIST, VendorStatus.REJECTED}),
    VendorStatus.SHORT_LIST: frozenset(
        {VendorStatus.RFP_ISSUED, VendorStatus.LONG_LIST, VendorStatus.REJECTED}
    ),
    VendorStatus.RFP_ISSUED: frozenset({VendorStatus.RESPONSE_RECEIVED, VendorStatus.REJECTED}),
    VendorStatus.RESPONSE_RECEIVED: frozenset(
        {VendorStatus.UNDER_EVALUATION, VendorStatus.REJECTED}
    ),
    VendorStatus.UNDER_EVALUATION: frozenset({VendorStatus.SELECTED, VendorStatus.REJECTED}),
    VendorStatus.SELECTED: frozenset(),
    # reactivation only
    VendorStatus.REJECTED: frozenset({VendorStatus.IDENTIFIED}),
}

STATUS_DISPLAY: dict[VendorStatus, StatusDisplay] = {
    VendorStatus.IDENTIFIED: StatusDisplay("Identified", "#6B7280", "Initial vendor identification", 1),
    VendorStatus.LONG_LIST: StatusDisplay("Long List", "#8B5CF6", "Added to long list for consideration", 2),
    VendorStatus.SHORT_LIST: StatusDisplay("Short List", "#3B82F6", "Shortlisted for RFP", 3),
    VendorStatus.RFP_ISSUED: StatusDisplay("RFP Issued", "#F59E0B", "RFP sent to vendor", 4),
    VendorStatus.RESPONSE_RECEIVED: StatusDisplay(
        "Response Received", "#10B981", "Vendor has submitted response", 5
    ),
    VendorStatus.UNDER_EVALUATION: StatusDisplay("Under Evaluation", "#EC4899", "Currently being evaluated", 6),
    VendorStatus.SELECTED: StatusDisplay("Selected", "#059669", "Selected as preferred vendor", 7),
    VendorStatus.REJECTED: StatusDisplay("Rejected", "#EF4444", "Not proceeding with this vendor", 8),
}

PIPELINE_STAGES: tuple[VendorStatus, ...] = (
    VendorStatus.IDENTIFIED,
    VendorStatus.LONG_LIST,
    VendorStatus.SHORT_LIST,
    VendorStatus.RFP_ISSUED,
    VendorStatus.RESPONSE_RECEIVED,
    VendorStatus.UNDER_EVALUATION,
)

TERMINAL_STAGES: tuple[VendorStatus, ...] = (VendorStatus.SELECTED, VendorStatus.REJECTED)


def _check_tables_exhaustive() -> None:
    statuses = set(VendorStatus)
    for name, table in (("TRANSITIONS", TRANSITIONS), ("STATUS_DISPLAY", STATUS_DISPLAY)):
        missing = statuses - set(table)
        if missing:
            raise RuntimeError(f"{name} has no entry for: {sorted(missing)}")


_check_tables_exhaustive()


def parse_status(value: str | VendorStatus) -> VendorStatus:
    """Coerce a raw status string, raising ValueError for unknown values."""
    try:
        return VendorStatus(value)
    except ValueError:
        raise ValueError(f"Unknown vendor status: {value!r}") from None


def valid_transitions(from_status: str | VendorStatus) -> frozenset[VendorStatus]:
    return TRANSITIONS[parse_status(from_status)]


def can_transition(from_status: str | VendorStatus, to_status: str | VendorStatus) -> bool:
    return parse_status(to_status) in valid_transitions(from_status)


def status_label(status: str | VendorStatus) -> str:
    return STATUS_DISPLAY[parse_status(status)].label
