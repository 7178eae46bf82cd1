"""Consensus reconciliation: recording the group's agreed score with provenance.

A consensus is always a deliberate human decision. The reconciler never
derives one by itself; it snapshots the scores being reconciled at save time
and records who decided and why. Scores edited afterwards do not reopen the
consensus; somebody has to reconcile again explicitly.
"""

import logging
from collections.abc import Sequence

from evaluator.domains.scoring.aggregate import ScoreAggregator
from evaluator.domains.scoring.models import CONSENSUS_KEY, CONSENSUS_TABLE, ConsensusScore
from evaluator.domains.scoring.scores import check_score_value
from evaluator.errors import NoScoresToReconcileError
from evaluator.store import logs_store_failures
from evaluator.utils.types import Clock, require_id, utcnow

logger = logging.getLogger(__name__)


class ConsensusReconciler:
    def __init__(self, aggregator: ScoreAggregator, clock: Clock = utcnow) -> None:
        self.aggregator = aggregator
        self.store = aggregator.scores.store
        self._clock = clock

    @logs_store_failures
    async def get_consensus(self, vendor_id: str, criterion_id: str) -> ConsensusScore | None:
        records = await self.store.query(CONSENSUS_TABLE, {
            "vendor_id": require_id(vendor_id, "vendor_id"),
            "criterion_id": require_id(criterion_id, "criterion_id"),
        })
        return ConsensusScore.from_record(records[0]) if records else None

    @logs_store_failures
    async def list_for_vendor(self, vendor_id: str) -> list[ConsensusScore]:
        records = await self.store.query(CONSENSUS_TABLE, {"vendor_id": require_id(vendor_id, "vendor_id")})
        return sorted((ConsensusScore.from_record(r) for r in records), key=lambda c: c.criterion_id)

    @logs_store_failures
    async def save_consensus(
        self,
        vendor_id: str,
        criterion_id: str,
        consensus_value: int,
        rationale: str | None,
        determined_by: str,
        source_score_ids: Sequence[str] | None = None,
    ) -> ConsensusScore:
        """Record (or replace) the consensus for a vendor/criterion pair.

        ``source_score_ids`` must name scores from the current comparison;
        when omitted every current score is taken as a source.
        """
        scoring = self.aggregator.scoring
        consensus_value = check_score_value(consensus_value, scoring.score_min, scoring.score_max)
        determined_by = require_id(determined_by, "determined_by")

        comparison = await self.aggregator.compare(vendor_id, criterion_id)
        current_ids = comparison.score_ids

        if source_score_ids is None:
            sources = current_ids
        else:
            sources = tuple(dict.fromkeys(source_score_ids))
            unknown = [sid for sid in sources if sid not in current_ids]
            if unknown:
                raise ValueError(
                    f"source scores are not part of the current comparison for "
                    f"vendor {vendor_id}, criterion {criterion_id}: {unknown}"
                )

        if not sources:
            raise NoScoresToReconcileError(vendor_id, criterion_id)

        record = await self.store.upsert(
            CONSENSUS_TABLE,
            CONSENSUS_KEY,
            {
                "vendor_id": vendor_id,
                "criterion_id": criterion_id,
                "consensus_value": consensus_value,
                "rationale": rationale,
                "determined_by": determined_by,
                "determined_at": self._clock(),
                "source_score_ids": list(sources),
            },
        )
        logger.info(
            "Consensus %d recorded for vendor %s / criterion %s by %s from %d scores (spread %s)",
            consensus_value, vendor_id, criterion_id, determined_by, len(sources), comparison.variance,
        )
        return ConsensusScore.from_record(record)
