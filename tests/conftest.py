"""
Pytest configuration and fixtures for the vendor evaluation test suite.
"""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from evaluator.config import load_evaluator_config
from evaluator.domains.scoring import (
    ConsensusReconciler,
    CriteriaCatalog,
    ScoreAggregator,
    ScoreStore,
    WeightedScorer,
)
from evaluator.domains.vendors import VendorContacts, VendorPipeline
from evaluator.store import InMemoryRecordStore

PROJECT_ID = "proj-1"


class FixedClock:
    """Deterministic clock that moves forward one minute per reading."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(minutes=1)
        return current


# ============================================================================
# Store and service fixtures
# ============================================================================

@pytest.fixture
def config():
    """Development configuration with default scoring bounds."""
    return load_evaluator_config("development")


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store():
    """Fresh in-memory record store."""
    return InMemoryRecordStore()


@pytest.fixture
def pipeline(store, config, clock):
    return VendorPipeline(store, config, clock=clock)


@pytest.fixture
def contacts(pipeline, clock):
    return VendorContacts(pipeline, clock=clock)


@pytest.fixture
def scores(store, config, clock):
    return ScoreStore(store, config, clock=clock)


@pytest.fixture
def aggregator(scores):
    return ScoreAggregator(scores)


@pytest.fixture
def reconciler(aggregator, clock):
    return ConsensusReconciler(aggregator, clock=clock)


@pytest.fixture
def catalog(store):
    return CriteriaCatalog(store)


@pytest.fixture
def scorer(pipeline, catalog, scores, reconciler):
    return WeightedScorer(pipeline, catalog, scores, reconciler)


# ============================================================================
# Seeded records
# ============================================================================

@pytest_asyncio.fixture
async def vendor(pipeline):
    """A freshly identified vendor in the default project."""
    return await pipeline.create_vendor(PROJECT_ID, "Acme CRM", description="Hosted CRM")


@pytest_asyncio.fixture
async def criteria(catalog):
    """Two categories (60/40) with three weighted criteria."""
    functional = await catalog.add_category(PROJECT_ID, "Functional fit", 60)
    commercial = await catalog.add_category(PROJECT_ID, "Commercials", 40)
    return {
        "reporting": await catalog.add_criterion(PROJECT_ID, functional.id, "Reporting", 2),
        "workflow": await catalog.add_criterion(PROJECT_ID, functional.id, "Workflow", 1),
        "pricing": await catalog.add_criterion(PROJECT_ID, commercial.id, "Pricing", 1),
    }
