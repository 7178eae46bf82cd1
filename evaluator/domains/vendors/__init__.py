"""Vendor domain: lifecycle statuses, the vendor pipeline, contacts and vendor exports."""

from evaluator.domains.vendors.statuses import (
    PIPELINE_STAGES,
    STATUS_DISPLAY,
    TERMINAL_STAGES,
    TRANSITIONS,
    VendorStatus,
    can_transition,
    valid_transitions,
)
from evaluator.domains.vendors.models import PipelineSummary, StatusChange, Vendor, VendorContact
from evaluator.domains.vendors.pipeline import VendorPipeline
from evaluator.domains.vendors.contacts import VendorContacts
from evaluator.domains.vendors.export import export_vendors
