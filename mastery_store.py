"""
Mastery Store - Per learner x concept mastery records.

Backends:
    InMemoryMasteryStore  -> dict guarded by a lock (tests, single process)
    RedisMasteryStore     -> one hash per learner

Redis key structure:
    learner:{learner_id}:mastery -> Hash (concept_id -> JSON record)

Every write goes through ``update``, an atomic read-modify-write, so two
exposure reports for the same pair can never overwrite each other.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

import redis

from core.models import MasteryRecord

logger = logging.getLogger(__name__)

RecordUpdate = Callable[[MasteryRecord], MasteryRecord]


class StoreError(Exception):
    """The backing store failed or returned unusable data."""
    retryable = False


class StoreUnavailableError(StoreError):
    """Transient persistence failure; the caller may retry the operation."""
    retryable = True


class MasteryStore(ABC):
    """Read/write contract for mastery records."""

    def get(self, learner_id: str, concept_id: str) -> Optional[MasteryRecord]:
        """Stored record for the pair, or None if never exposed."""
        return self.get_all(learner_id).get(concept_id)

    def get_or_default(self, learner_id: str, concept_id: str) -> MasteryRecord:
        """Stored record, or the zero-state record for a first exposure."""
        record = self.get(learner_id, concept_id)
        if record is None:
            record = MasteryRecord(learner_id=learner_id, concept_id=concept_id)
        return record

    @abstractmethod
    def get_all(self, learner_id: str) -> Dict[str, MasteryRecord]:
        """All records for a learner, keyed by concept id."""

    def list_exposed(self, learner_id: str) -> List[MasteryRecord]:
        """Records with at least one exposure."""
        return [r for r in self.get_all(learner_id).values() if r.exposures > 0]

    @abstractmethod
    def update(self, learner_id: str, concept_id: str, fn: RecordUpdate) -> MasteryRecord:
        """
        Atomically replace a record with ``fn(current)``.

        ``fn`` receives the stored record (or the zero-state default) and must
        return the new record without side effects; it may be called more
        than once if a concurrent write forces a retry.

        Raises:
            StoreUnavailableError: if the backend cannot be reached.
        """


# ==================== In-Memory ====================

class InMemoryMasteryStore(MasteryStore):
    def __init__(self):
        self._records: Dict[str, Dict[str, MasteryRecord]] = {}
        self._lock = threading.Lock()

    def get_all(self, learner_id: str) -> Dict[str, MasteryRecord]:
        with self._lock:
            return {cid: r.copy() for cid, r in self._records.get(learner_id, {}).items()}

    def update(self, learner_id: str, concept_id: str, fn: RecordUpdate) -> MasteryRecord:
        with self._lock:
            records = self._records.setdefault(learner_id, {})
            current = records.get(concept_id)
            if current is None:
                current = MasteryRecord(learner_id=learner_id, concept_id=concept_id)

            new_record = fn(current.copy())
            new_record.validate()
            records[concept_id] = new_record
            return new_record.copy()


# ==================== Redis ====================

class RedisMasteryStore(MasteryStore):
    def __init__(self, client: redis.Redis):
        """``client`` must be created with ``decode_responses=True``."""
        self.client = client

    # ==================== Key Builders ====================

    def _mastery_key(self, learner_id: str) -> str:
        """Redis key for a learner's mastery records."""
        return f"learner:{learner_id}:mastery"

    # ==================== Reads ====================

    def get(self, learner_id: str, concept_id: str) -> Optional[MasteryRecord]:
        try:
            raw = self.client.hget(self._mastery_key(learner_id), concept_id)
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as exc:
            raise StoreUnavailableError(f"Redis read failed: {exc}") from exc
        return self._decode(raw) if raw else None

    def get_all(self, learner_id: str) -> Dict[str, MasteryRecord]:
        try:
            raw = self.client.hgetall(self._mastery_key(learner_id))
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as exc:
            raise StoreUnavailableError(f"Redis read failed: {exc}") from exc
        return {cid: self._decode(value) for cid, value in raw.items()}

    # ==================== Writes ====================

    def update(self, learner_id: str, concept_id: str, fn: RecordUpdate) -> MasteryRecord:
        """
        Read-modify-write inside WATCH/MULTI.

        redis-py re-runs the callable when the watched hash changes between
        the read and EXEC, so concurrent increments are never lost.
        """
        key = self._mastery_key(learner_id)
        result: Dict[str, MasteryRecord] = {}

        def apply(pipe):
            raw = pipe.hget(key, concept_id)
            if raw:
                current = self._decode(raw)
            else:
                current = MasteryRecord(learner_id=learner_id, concept_id=concept_id)

            new_record = fn(current)
            new_record.validate()

            pipe.multi()
            pipe.hset(key, concept_id, json.dumps(new_record.to_dict()))
            result["record"] = new_record

        try:
            self.client.transaction(apply, key)
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as exc:
            logger.warning("Mastery write for %s/%s failed: %s", learner_id, concept_id, exc)
            raise StoreUnavailableError(f"Redis write failed: {exc}") from exc

        return result["record"]

    # ==================== Helpers ====================

    def _decode(self, raw: str) -> MasteryRecord:
        try:
            return MasteryRecord.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            raise StoreError(f"Corrupt mastery record: {exc}") from exc
