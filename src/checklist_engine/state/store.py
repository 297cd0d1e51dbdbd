"""In-memory store for questionnaire responses.

One live record per user: every save replaces the answers and recommendation,
refreshes updated_at and keeps the created_at of the first save.

Concurrency:
- Saves for the same user are serialized by a per-user lock, so two racing
  first saves cannot both mint their own created_at
- Saves for different users take different locks and never wait on each other
- Reads are lock-free; a reader sees either the old or the new record
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from ..scoring.engine import Recommendation
from ..util.time import isoformat, now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuestionnaireRecord:
    """A user's answers paired with the recommendation computed from them.

    created_at/updated_at are assigned by the store; values supplied by the
    caller are ignored.
    """
    user_id: str
    answers: Mapping[str, bool]
    recommendation: Recommendation
    role: Optional[str] = None
    questionnaire: str = "asvs"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON output."""
        data: Dict[str, Any] = {
            'userId': self.user_id,
            'questionnaire': self.questionnaire,
            'answers': dict(self.answers),
            'recommendations': self.recommendation.to_dict(),
            'createdAt': isoformat(self.created_at) if self.created_at else None,
            'updatedAt': isoformat(self.updated_at) if self.updated_at else None,
        }
        if self.role is not None:
            data['role'] = self.role
        return data


class RecordStore(ABC):
    """Keyed upsert store interface."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[QuestionnaireRecord]:
        """Return the user's record, or None when they have never saved."""

    @abstractmethod
    def save(self, record: QuestionnaireRecord) -> QuestionnaireRecord:
        """Upsert the record and return it with server-assigned timestamps."""


class InMemoryRecordStore(RecordStore):
    """Process-local RecordStore backed by a dict.

    Thread-safe. `clock` is injectable so tests can freeze or step time.
    """

    def __init__(self, clock: Callable[[], datetime] = now_utc):
        self._clock = clock
        self._records: Dict[str, QuestionnaireRecord] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[user_id] = lock
            return lock

    def get(self, user_id: str) -> Optional[QuestionnaireRecord]:
        return self._records.get(user_id)

    def save(self, record: QuestionnaireRecord) -> QuestionnaireRecord:
        with self._lock_for(record.user_id):
            existing = self._records.get(record.user_id)
            now = self._clock()
            if existing is None:
                created_at = now
                updated_at = now
            else:
                created_at = existing.created_at
                # A clock that steps backwards must not make updated_at regress
                updated_at = max(now, existing.updated_at)

            stored = replace(
                record,
                answers=dict(record.answers),
                created_at=created_at,
                updated_at=updated_at,
            )
            self._records[record.user_id] = stored

        logger.debug(
            f"{'Updated' if existing else 'Created'} {record.questionnaire} record for {record.user_id} "
            f"({stored.recommendation.level.label})"
        )
        return stored

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._records
