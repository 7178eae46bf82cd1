"""Scoring records and pandera schemas for scoring outputs."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from pandera import Column, Check, DataFrameSchema

SCORES_TABLE = "scores"
CONSENSUS_TABLE = "consensus_scores"
CATEGORIES_TABLE = "evaluation_categories"
CRITERIA_TABLE = "evaluation_criteria"

SCORE_KEY = ("vendor_id", "criterion_id", "evaluator_id")
CONSENSUS_KEY = ("vendor_id", "criterion_id")


class ScoreStatus(StrEnum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


class VarianceTier(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _dedupe(ids) -> tuple[str, ...]:
    return tuple(dict.fromkeys(ids or ()))


@dataclass(frozen=True)
class Score:
    id: str
    vendor_id: str
    criterion_id: str
    evaluator_id: str
    value: int
    status: ScoreStatus
    rationale: str | None = None
    evidence_ids: tuple[str, ...] = ()
    evaluation_project_id: str | None = None
    scored_at: datetime | None = None
    submitted_at: datetime | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Score":
        return cls(
            id=record["id"],
            vendor_id=record["vendor_id"],
            criterion_id=record["criterion_id"],
            evaluator_id=record["evaluator_id"],
            value=record["value"],
            status=ScoreStatus(record["status"]),
            rationale=record.get("rationale"),
            evidence_ids=_dedupe(record.get("evidence_ids")),
            evaluation_project_id=record.get("evaluation_project_id"),
            scored_at=record.get("scored_at"),
            submitted_at=record.get("submitted_at"),
        )


@dataclass(frozen=True)
class ConsensusScore:
    id: str
    vendor_id: str
    criterion_id: str
    consensus_value: int
    determined_by: str
    source_score_ids: tuple[str, ...]
    rationale: str | None = None
    determined_at: datetime | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ConsensusScore":
        return cls(
            id=record["id"],
            vendor_id=record["vendor_id"],
            criterion_id=record["criterion_id"],
            consensus_value=record["consensus_value"],
            determined_by=record["determined_by"],
            source_score_ids=_dedupe(record.get("source_score_ids")),
            rationale=record.get("rationale"),
            determined_at=record.get("determined_at"),
        )


@dataclass(frozen=True)
class ComparisonResult:
    """Spread of evaluator scores for one (vendor, criterion) pair.

    A result with ``count == 0`` is the "no scores" sentinel: the numeric
    fields and the tier are None and ``comparable`` is False.
    """

    vendor_id: str
    criterion_id: str
    scores: tuple[Score, ...]
    count: int
    average: float | None
    min: int | None
    max: int | None
    variance: int | None
    tier: VarianceTier | None

    @classmethod
    def no_scores(cls, vendor_id: str, criterion_id: str) -> "ComparisonResult":
        return cls(vendor_id, criterion_id, (), 0, None, None, None, None, None)

    @property
    def comparable(self) -> bool:
        return self.count > 0

    @property
    def needs_reconciliation(self) -> bool:
        return self.comparable and self.tier is not VarianceTier.LOW

    @property
    def score_ids(self) -> tuple[str, ...]:
        return tuple(s.id for s in self.scores)


@dataclass(frozen=True)
class Category:
    id: str
    evaluation_project_id: str
    name: str
    weight: float

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Category":
        return cls(record["id"], record["evaluation_project_id"], record["name"], float(record["weight"]))


@dataclass(frozen=True)
class Criterion:
    id: str
    evaluation_project_id: str
    category_id: str
    name: str
    weight: float = 1.0

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Criterion":
        return cls(
            record["id"],
            record["evaluation_project_id"],
            record["category_id"],
            record["name"],
            float(record.get("weight", 1.0)),
        )


@dataclass(frozen=True)
class ScoringProgress:
    total_criteria: int
    scored: int
    submitted: int
    draft: int
    percent_complete: int


def build_score_export_schema(low: int = 1, high: int = 5) -> DataFrameSchema:
    """Schema for the per-score export table."""
    return DataFrameSchema(
        columns={
            "score_id": Column(str, nullable=False, unique=True),
            "vendor_id": Column(str, nullable=False),
            "criterion_id": Column(str, nullable=False),
            "evaluator_id": Column(str, nullable=False),
            "value": Column(int, checks=Check.in_range(low, high), nullable=False),
            "status": Column(str, checks=Check.isin([s.value for s in ScoreStatus]), nullable=False),
            "rationale": Column(str, nullable=False),
            "evidence_count": Column(int, checks=Check.ge(0), nullable=False),
        },
        coerce=True,
        strict=False,
    )


def build_comparison_schema(low: int = 1, high: int = 5) -> DataFrameSchema:
    """Schema for the per-criterion comparison matrix."""
    return DataFrameSchema(
        columns={
            "criterion_id": Column(str, nullable=False, unique=True),
            "count": Column(int, checks=Check.ge(0), nullable=False),
            "average": Column(float, checks=Check.in_range(float(low), float(high)), nullable=True),
            "min": Column(float, checks=Check.in_range(float(low), float(high)), nullable=True),
            "max": Column(float, checks=Check.in_range(float(low), float(high)), nullable=True),
            "variance": Column(float, checks=Check.ge(0), nullable=True),
            # no-scores rows carry a null tier
            "tier": Column(checks=Check.isin([t.value for t in VarianceTier]), nullable=True),
            "needs_reconciliation": Column(bool, nullable=False),
        },
        coerce=True,
        strict=False,
    )
