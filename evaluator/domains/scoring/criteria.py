"""Evaluation categories and the weighted criteria scored within them."""

import logging

from evaluator.domains.scoring.models import CATEGORIES_TABLE, CRITERIA_TABLE, Category, Criterion
from evaluator.errors import NotFoundError
from evaluator.store import RecordStore, logs_store_failures
from evaluator.utils.types import require_id

logger = logging.getLogger(__name__)


class CriteriaCatalog:
    def __init__(self, store: RecordStore) -> None:
        self.store = store

    @logs_store_failures
    async def add_category(self, evaluation_project_id: str, name: str, weight: float) -> Category:
        """Add a category whose ``weight`` is its percentage share of the total."""
        if not 0 <= weight <= 100:
            raise ValueError(f"Category weight must be between 0 and 100, got {weight}")
        if not name or not name.strip():
            raise ValueError("name is required")
        record = await self.store.insert(CATEGORIES_TABLE, {
            "evaluation_project_id": require_id(evaluation_project_id, "evaluation_project_id"),
            "name": name.strip(),
            "weight": float(weight),
        })
        return Category.from_record(record)

    @logs_store_failures
    async def add_criterion(
        self,
        evaluation_project_id: str,
        category_id: str,
        name: str,
        weight: float = 1.0,
    ) -> Criterion:
        if weight <= 0:
            raise ValueError(f"Criterion weight must be positive, got {weight}")
        if not name or not name.strip():
            raise ValueError("name is required")
        project_id = require_id(evaluation_project_id, "evaluation_project_id")

        category = await self.store.get(CATEGORIES_TABLE, require_id(category_id, "category_id"))
        if category is None or category["evaluation_project_id"] != project_id:
            raise NotFoundError("category", category_id)

        record = await self.store.insert(CRITERIA_TABLE, {
            "evaluation_project_id": project_id,
            "category_id": category_id,
            "name": name.strip(),
            "weight": float(weight),
        })
        return Criterion.from_record(record)

    @logs_store_failures
    async def get_criterion(self, criterion_id: str) -> Criterion:
        record = await self.store.get(CRITERIA_TABLE, require_id(criterion_id, "criterion_id"))
        if record is None:
            raise NotFoundError("criterion", criterion_id)
        return Criterion.from_record(record)

    @logs_store_failures
    async def list_categories(self, evaluation_project_id: str) -> list[Category]:
        records = await self.store.query(CATEGORIES_TABLE, {
            "evaluation_project_id": require_id(evaluation_project_id, "evaluation_project_id"),
        })
        categories = [Category.from_record(r) for r in records]
        total = sum(c.weight for c in categories)
        if categories and abs(total - 100) > 0.01:
            logger.warning("Category weights for project %s sum to %.2f, not 100", evaluation_project_id, total)
        return categories

    @logs_store_failures
    async def list_criteria(self, evaluation_project_id: str, category_id: str | None = None) -> list[Criterion]:
        where = {"evaluation_project_id": require_id(evaluation_project_id, "evaluation_project_id")}
        if category_id:
            where["category_id"] = category_id
        return [Criterion.from_record(r) for r in await self.store.query(CRITERIA_TABLE, where)]
