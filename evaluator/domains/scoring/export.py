"""Flat score exports for reports."""

import logging

import pandas as pd

from evaluator.domains.scoring.models import build_score_export_schema
from evaluator.domains.scoring.scores import ScoreStore
from evaluator.utils.validators import ensure_valid

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "score_id", "vendor_id", "criterion_id", "evaluator_id",
    "value", "status", "rationale", "evidence_count",
]


async def export_scores(scores: ScoreStore, evaluation_project_id: str) -> pd.DataFrame:
    """Build the validated per-score report table for one evaluation project."""
    rows = [
        {
            "score_id": s.id,
            "vendor_id": s.vendor_id,
            "criterion_id": s.criterion_id,
            "evaluator_id": s.evaluator_id,
            "value": s.value,
            "status": str(s.status),
            "rationale": s.rationale or "",
            "evidence_count": len(s.evidence_ids),
        }
        for s in await scores.list_scores(evaluation_project_id)
    ]
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    logger.info("Exported %d scores for project %s", len(df), evaluation_project_id)
    scoring = scores.config.scoring
    return ensure_valid(df, build_score_export_schema(scoring.score_min, scoring.score_max), "score export")
