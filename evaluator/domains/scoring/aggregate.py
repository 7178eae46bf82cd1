"""Score comparison across evaluators and variance tiering."""

import logging
from collections.abc import Iterable

import pandas as pd

from evaluator.config import ScoringConfig
from evaluator.domains.scoring.models import ComparisonResult, VarianceTier, build_comparison_schema
from evaluator.domains.scoring.scores import ScoreStore
from evaluator.store import logs_store_failures
from evaluator.utils.validators import ensure_valid

logger = logging.getLogger(__name__)

COMPARISON_COLUMNS = [
    "criterion_id", "count", "average", "min", "max", "variance", "tier", "needs_reconciliation",
]


def classify_variance(variance: float, scoring: ScoringConfig) -> VarianceTier:
    """Map a score range onto the low/medium/high disagreement tier."""
    match variance:
        case v if v <= scoring.low_variance_max:
            return VarianceTier.LOW
        case v if v <= scoring.medium_variance_max:
            return VarianceTier.MEDIUM
        case _:
            return VarianceTier.HIGH


class ScoreAggregator:
    def __init__(self, scores: ScoreStore) -> None:
        self.scores = scores

    @property
    def scoring(self) -> ScoringConfig:
        return self.scores.config.scoring

    @logs_store_failures
    async def compare(self, vendor_id: str, criterion_id: str) -> ComparisonResult:
        """Descriptive statistics for every evaluator's score on one criterion.

        ``variance`` is the range (max - min), not the statistical variance.
        With no scores the "no scores" sentinel is returned. A missing or
        deleted vendor raises NotFoundError.
        """
        await self.scores.live_vendor(vendor_id)
        scores = await self.scores.get_for_criterion(vendor_id, criterion_id)
        if not scores:
            return ComparisonResult.no_scores(vendor_id, criterion_id)

        values = pd.Series([s.value for s in scores], dtype="int64")
        low, high = int(values.min()), int(values.max())
        spread = high - low

        return ComparisonResult(
            vendor_id=vendor_id,
            criterion_id=criterion_id,
            scores=tuple(scores),
            count=len(values),
            average=float(values.mean()),
            min=low,
            max=high,
            variance=spread,
            tier=classify_variance(spread, self.scoring),
        )

    @logs_store_failures
    async def compare_vendor(
        self,
        vendor_id: str,
        criterion_ids: Iterable[str] | None = None,
    ) -> pd.DataFrame:
        """One comparison row per criterion, for the reconciliation matrix.

        Without ``criterion_ids`` every criterion the vendor has been scored
        on is included.
        """
        await self.scores.live_vendor(vendor_id)
        if criterion_ids is None:
            scored = await self.scores.get_by_vendor(vendor_id)
            criterion_ids = sorted({s.criterion_id for s in scored})

        rows = []
        for criterion_id in criterion_ids:
            result = await self.compare(vendor_id, criterion_id)
            rows.append({
                "criterion_id": criterion_id,
                "count": result.count,
                "average": result.average,
                "min": result.min,
                "max": result.max,
                "variance": result.variance,
                "tier": str(result.tier) if result.tier else None,
                "needs_reconciliation": result.needs_reconciliation,
            })

        matrix = pd.DataFrame(rows, columns=COMPARISON_COLUMNS)
        flagged = int(matrix["needs_reconciliation"].sum()) if len(matrix) else 0
        logger.info("Compared %d criteria for vendor %s, %d need reconciliation", len(matrix), vendor_id, flagged)
        schema = build_comparison_schema(self.scoring.score_min, self.scoring.score_max)
        return ensure_valid(matrix, schema, "comparison matrix")
