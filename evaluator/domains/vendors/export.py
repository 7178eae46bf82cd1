"""Flat vendor exports for reports."""

import logging
from datetime import datetime

import pandas as pd

from evaluator.domains.vendors.models import VENDOR_EXPORT_SCHEMA
from evaluator.domains.vendors.pipeline import VendorPipeline
from evaluator.domains.vendors.statuses import status_label
from evaluator.utils.validators import ensure_valid

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "vendor_id", "name", "description", "website", "status",
    "status_label", "portal_enabled", "created_at", "updated_at",
]


def _iso(value: datetime | None) -> str:
    return value.isoformat() if value else ""


async def export_vendors(pipeline: VendorPipeline, evaluation_project_id: str) -> pd.DataFrame:
    """Build the validated vendor report table for one evaluation project."""
    vendors = await pipeline.list_vendors(evaluation_project_id)
    rows = [
        {
            "vendor_id": v.id,
            "name": v.name,
            "description": v.description or "",
            "website": v.website or "",
            "status": str(v.status),
            "status_label": status_label(v.status),
            "portal_enabled": "Yes" if v.portal_enabled else "No",
            "created_at": _iso(v.created_at),
            "updated_at": _iso(v.updated_at),
        }
        for v in vendors
    ]
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    logger.info("Exported %d vendors for project %s", len(df), evaluation_project_id)
    return ensure_valid(df, VENDOR_EXPORT_SCHEMA, "vendor export")
