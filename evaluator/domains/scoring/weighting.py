"""Weighted vendor totals and project-wide vendor ranking."""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from evaluator.domains.scoring.consensus import ConsensusReconciler
from evaluator.domains.scoring.criteria import CriteriaCatalog
from evaluator.domains.scoring.scores import ScoreStore
from evaluator.domains.vendors.pipeline import VendorPipeline
from evaluator.store import logs_store_failures

logger = logging.getLogger(__name__)

CRITERIA_COLUMNS = [
    "category_id", "criterion_id", "criterion_name", "weight", "score", "source", "weighted_score", "max_score",
]
CATEGORY_COLUMNS = ["category_id", "name", "weight", "score", "max_score", "percentage", "contribution"]


@dataclass(frozen=True)
class VendorTotal:
    vendor_id: str
    total_score: float
    criteria: pd.DataFrame
    categories: pd.DataFrame
    max_score: float = 100.0


class WeightedScorer:
    """Roll criterion scores up through category weights to a 0-100 total.

    Each criterion contributes its consensus value when one exists (and
    ``use_consensus`` is set), otherwise the mean of the individual scores,
    otherwise nothing. A category's percentage is its weighted score over
    its weighted maximum; the total is the sum of percentages scaled by each
    category's share.
    """

    def __init__(
        self,
        pipeline: VendorPipeline,
        catalog: CriteriaCatalog,
        scores: ScoreStore,
        reconciler: ConsensusReconciler,
    ) -> None:
        self.pipeline = pipeline
        self.catalog = catalog
        self.scores = scores
        self.reconciler = reconciler

    async def _criterion_scores(self, vendor_id: str, use_consensus: bool) -> pd.DataFrame:
        individual = pd.DataFrame(
            [{"criterion_id": s.criterion_id, "value": s.value} for s in await self.scores.get_by_vendor(vendor_id)],
            columns=["criterion_id", "value"],
        ).astype({"value": float})
        means = individual.groupby("criterion_id")["value"].mean()

        consensus = {}
        if use_consensus:
            consensus = {c.criterion_id: c.consensus_value for c in await self.reconciler.list_for_vendor(vendor_id)}

        rows = []
        for criterion_id in sorted(set(means.index) | set(consensus)):
            match (consensus.get(criterion_id), criterion_id in means.index):
                case (int() as agreed, _):
                    rows.append({"criterion_id": criterion_id, "score": float(agreed), "source": "consensus"})
                case (None, True):
                    rows.append({"criterion_id": criterion_id, "score": float(means[criterion_id]), "source": "average"})
        return pd.DataFrame(rows, columns=["criterion_id", "score", "source"]).astype({"score": float})

    @logs_store_failures
    async def weighted_total(self, vendor_id: str, use_consensus: bool = True) -> VendorTotal:
        vendor = await self.pipeline.get_vendor(vendor_id)
        project_id = vendor.evaluation_project_id
        score_max = self.scores.config.scoring.score_max

        categories = pd.DataFrame(
            [{"category_id": c.id, "name": c.name, "weight": c.weight}
             for c in await self.catalog.list_categories(project_id)],
            columns=["category_id", "name", "weight"],
        ).astype({"weight": float})
        criteria = pd.DataFrame(
            [{"category_id": c.category_id, "criterion_id": c.id, "criterion_name": c.name, "weight": c.weight}
             for c in await self.catalog.list_criteria(project_id)],
            columns=["category_id", "criterion_id", "criterion_name", "weight"],
        ).astype({"weight": float})

        scored = await self._criterion_scores(vendor_id, use_consensus)
        criteria = criteria.merge(scored, on="criterion_id", how="left")
        criteria["weighted_score"] = criteria["score"] * criteria["weight"]
        criteria["max_score"] = score_max * criteria["weight"]

        per_category = criteria.groupby("category_id").agg(
            score=("weighted_score", "sum"),
            max_score=("max_score", "sum"),
        ).reset_index()
        categories = categories.merge(per_category, on="category_id", how="left")
        categories[["score", "max_score"]] = categories[["score", "max_score"]].fillna(0.0)

        score = categories["score"].to_numpy(dtype=float)
        maximum = categories["max_score"].to_numpy(dtype=float)
        categories["percentage"] = np.divide(score, maximum, out=np.zeros_like(score), where=maximum > 0) * 100
        categories["contribution"] = categories["percentage"] * categories["weight"] / 100

        total = float(categories["contribution"].sum())
        logger.info("Weighted total for vendor %s: %.2f", vendor_id, total)
        return VendorTotal(
            vendor_id=vendor_id,
            total_score=round(total, 4),
            criteria=criteria[CRITERIA_COLUMNS],
            categories=categories[CATEGORY_COLUMNS],
        )

    @logs_store_failures
    async def rank_vendors(self, evaluation_project_id: str, use_consensus: bool = True) -> pd.DataFrame:
        """Rank the project's live vendors by weighted total, best first."""
        rows = []
        for vendor in await self.pipeline.list_vendors(evaluation_project_id):
            result = await self.weighted_total(vendor.id, use_consensus=use_consensus)
            rows.append({
                "vendor_id": vendor.id,
                "name": vendor.name,
                "status": str(vendor.status),
                "total_score": result.total_score,
            })

        ranking = pd.DataFrame(rows, columns=["vendor_id", "name", "status", "total_score"])
        ranking = ranking.sort_values(["total_score", "name"], ascending=[False, True], kind="stable")
        ranking = ranking.reset_index(drop=True)
        ranking["rank"] = ranking.index + 1
        return ranking
