"""Individual evaluator scores: validation, last-write-wins saves and submission."""

import logging
from collections.abc import Iterable

from evaluator.config import EvaluatorConfig, load_evaluator_config
from evaluator.domains.scoring.models import (
    CRITERIA_TABLE,
    SCORE_KEY,
    SCORES_TABLE,
    Score,
    ScoreStatus,
    ScoringProgress,
)
from evaluator.domains.vendors.models import VENDORS_TABLE
from evaluator.errors import InvalidScoreValueError, NotFoundError
from evaluator.store import RecordStore, logs_store_failures
from evaluator.utils.types import Clock, require_id, utcnow

logger = logging.getLogger(__name__)


def check_score_value(value: object, low: int, high: int) -> int:
    """Return ``value`` if it is an integer inside [low, high]."""
    match value:
        case bool():
            raise InvalidScoreValueError(value, low, high)
        case int() if low <= value <= high:
            return value
        case _:
            raise InvalidScoreValueError(value, low, high)


def _sort_key(score: Score) -> tuple[str, str]:
    return (score.criterion_id, score.evaluator_id)


class ScoreStore:
    def __init__(
        self,
        store: RecordStore,
        config: EvaluatorConfig | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.config = config or load_evaluator_config("development")
        self._clock = clock

    def validate_value(self, value: object) -> int:
        scoring = self.config.scoring
        return check_score_value(value, scoring.score_min, scoring.score_max)

    @logs_store_failures
    async def live_vendor(self, vendor_id: str) -> dict:
        """Raw record of a vendor that exists and is not deleted."""
        vendor = await self.store.get(VENDORS_TABLE, vendor_id)
        if vendor is None or vendor.get("is_deleted"):
            raise NotFoundError("vendor", vendor_id)
        return vendor

    @logs_store_failures
    async def save_score(
        self,
        vendor_id: str,
        criterion_id: str,
        evaluator_id: str,
        value: int,
        rationale: str | None = None,
        evidence_ids: Iterable[str] = (),
        status: ScoreStatus | str = ScoreStatus.DRAFT,
    ) -> Score:
        """Create or overwrite the score for (vendor, criterion, evaluator).

        The previous value for the same key is replaced, not versioned.
        """
        try:
            value = self.validate_value(value)
        except InvalidScoreValueError:
            logger.warning("Rejected score %r for vendor %s / criterion %s", value, vendor_id, criterion_id)
            raise
        vendor_id = require_id(vendor_id, "vendor_id")
        criterion_id = require_id(criterion_id, "criterion_id")
        evaluator_id = require_id(evaluator_id, "evaluator_id")
        status = ScoreStatus(status)

        vendor = await self.live_vendor(vendor_id)
        now = self._clock()
        record = await self.store.upsert(
            SCORES_TABLE,
            SCORE_KEY,
            {
                "vendor_id": vendor_id,
                "criterion_id": criterion_id,
                "evaluator_id": evaluator_id,
                "evaluation_project_id": vendor["evaluation_project_id"],
                "value": value,
                "rationale": rationale,
                "status": str(status),
                "evidence_ids": list(dict.fromkeys(evidence_ids)),
                "scored_at": now,
                "submitted_at": now if status is ScoreStatus.SUBMITTED else None,
            },
        )
        logger.info(
            "Saved %s score %d for vendor %s / criterion %s by %s",
            status, value, vendor_id, criterion_id, evaluator_id,
        )
        return Score.from_record(record)

    @logs_store_failures
    async def get_score(self, vendor_id: str, criterion_id: str, evaluator_id: str) -> Score | None:
        records = await self.store.query(SCORES_TABLE, {
            "vendor_id": vendor_id,
            "criterion_id": criterion_id,
            "evaluator_id": evaluator_id,
        })
        return Score.from_record(records[0]) if records else None

    @logs_store_failures
    async def get_by_id(self, score_id: str) -> Score:
        record = await self.store.get(SCORES_TABLE, require_id(score_id, "score_id"))
        if record is None:
            raise NotFoundError("score", score_id)
        return Score.from_record(record)

    @logs_store_failures
    async def get_by_vendor(self, vendor_id: str, evaluator_id: str | None = None) -> list[Score]:
        where = {"vendor_id": require_id(vendor_id, "vendor_id")}
        if evaluator_id:
            where["evaluator_id"] = evaluator_id
        records = await self.store.query(SCORES_TABLE, where)
        return sorted((Score.from_record(r) for r in records), key=_sort_key)

    @logs_store_failures
    async def get_for_criterion(self, vendor_id: str, criterion_id: str) -> list[Score]:
        records = await self.store.query(SCORES_TABLE, {
            "vendor_id": require_id(vendor_id, "vendor_id"),
            "criterion_id": require_id(criterion_id, "criterion_id"),
        })
        return sorted((Score.from_record(r) for r in records), key=_sort_key)

    @logs_store_failures
    async def list_scores(
        self,
        evaluation_project_id: str,
        *,
        vendor_id: str | None = None,
        criterion_id: str | None = None,
        evaluator_id: str | None = None,
        status: ScoreStatus | str | None = None,
    ) -> list[Score]:
        where = {"evaluation_project_id": require_id(evaluation_project_id, "evaluation_project_id")}
        filters = {
            "vendor_id": vendor_id,
            "criterion_id": criterion_id,
            "evaluator_id": evaluator_id,
            "status": str(ScoreStatus(status)) if status else None,
        }
        where.update({k: v for k, v in filters.items() if v is not None})
        records = await self.store.query(SCORES_TABLE, where)
        return sorted((Score.from_record(r) for r in records), key=lambda s: (s.vendor_id, *_sort_key(s)))

    @logs_store_failures
    async def submit_score(self, score_id: str) -> Score:
        record = await self.store.update(
            SCORES_TABLE,
            require_id(score_id, "score_id"),
            {"status": str(ScoreStatus.SUBMITTED), "submitted_at": self._clock()},
        )
        if record is None:
            raise NotFoundError("score", score_id)
        return Score.from_record(record)

    @logs_store_failures
    async def submit_all(self, vendor_id: str, evaluator_id: str) -> int:
        """Flip the evaluator's draft scores for a vendor to submitted."""
        updated = await self.store.update_where(
            SCORES_TABLE,
            {
                "vendor_id": require_id(vendor_id, "vendor_id"),
                "evaluator_id": require_id(evaluator_id, "evaluator_id"),
                "status": str(ScoreStatus.DRAFT),
            },
            {"status": str(ScoreStatus.SUBMITTED), "submitted_at": self._clock()},
        )
        logger.info("Submitted %d draft scores for vendor %s by %s", len(updated), vendor_id, evaluator_id)
        return len(updated)

    @logs_store_failures
    async def link_evidence(self, score_id: str, evidence_id: str) -> Score:
        score = await self.get_by_id(score_id)
        evidence_id = require_id(evidence_id, "evidence_id")
        if evidence_id in score.evidence_ids:
            return score
        return await self._set_evidence(score_id, [*score.evidence_ids, evidence_id])

    @logs_store_failures
    async def unlink_evidence(self, score_id: str, evidence_id: str) -> Score:
        score = await self.get_by_id(score_id)
        if evidence_id not in score.evidence_ids:
            return score
        return await self._set_evidence(score_id, [e for e in score.evidence_ids if e != evidence_id])

    async def _set_evidence(self, score_id: str, evidence_ids: list[str]) -> Score:
        record = await self.store.update(SCORES_TABLE, score_id, {"evidence_ids": evidence_ids})
        if record is None:
            raise NotFoundError("score", score_id)
        return Score.from_record(record)

    @logs_store_failures
    async def scoring_progress(
        self,
        vendor_id: str,
        evaluator_id: str | None = None,
    ) -> ScoringProgress:
        """Summarise how far scoring of a vendor has got against its project's criteria."""
        vendor = await self.live_vendor(vendor_id)
        criteria = await self.store.query(CRITERIA_TABLE, {"evaluation_project_id": vendor["evaluation_project_id"]})
        total_criteria = len(criteria)
        scores = await self.get_by_vendor(vendor_id, evaluator_id=evaluator_id)
        scored = len({s.criterion_id for s in scores})
        submitted = sum(1 for s in scores if s.status is ScoreStatus.SUBMITTED)
        percent = round(scored / total_criteria * 100) if total_criteria > 0 else 0
        return ScoringProgress(
            total_criteria=total_criteria,
            scored=scored,
            submitted=submitted,
            draft=len(scores) - submitted,
            percent_complete=percent,
        )
