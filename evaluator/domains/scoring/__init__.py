"""Scoring domain: evaluator scores, comparison, consensus and weighted totals."""

from evaluator.domains.scoring.models import (
    Category,
    ComparisonResult,
    ConsensusScore,
    Criterion,
    Score,
    ScoreStatus,
    ScoringProgress,
    VarianceTier,
)
from evaluator.domains.scoring.scores import ScoreStore, check_score_value
from evaluator.domains.scoring.aggregate import ScoreAggregator, classify_variance
from evaluator.domains.scoring.consensus import ConsensusReconciler
from evaluator.domains.scoring.criteria import CriteriaCatalog
from evaluator.domains.scoring.weighting import VendorTotal, WeightedScorer
from evaluator.domains.scoring.export import export_scores
