"""Record store contract and the in-memory implementation."""

from evaluator.store.base import Record, RecordStore, Where, logs_store_failures
from evaluator.store.memory import InMemoryRecordStore
