"""
In-memory draft store - Implements DraftStore protocol.

Holds staged registration forms between the form, review and submit
steps. Drafts are keyed by an unguessable id and expire after a TTL.
"""

import secrets
import threading
import time
from collections.abc import Callable

from src.domain.records import RegistrationCandidate, RegistrationDraft


class InMemoryDraftStore:
    """
    Implements DraftStore protocol with a lock-protected dict.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Expired drafts are purged lazily on every save.
    """

    def __init__(self, ttl_seconds: int = 1800, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._drafts: dict[str, RegistrationDraft] = {}

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def save(self, candidate: RegistrationCandidate) -> RegistrationDraft:
        now = self._clock()
        draft = RegistrationDraft(
            draft_id=secrets.token_urlsafe(16),
            candidate=candidate,
            expires_at=now + self._ttl,
        )
        with self._lock:
            self._purge(now)
            self._drafts[draft.draft_id] = draft
        return draft

    def get(self, draft_id: str) -> RegistrationDraft | None:
        with self._lock:
            draft = self._drafts.get(draft_id)
            if draft is None:
                return None
            if draft.expires_at <= self._clock():
                del self._drafts[draft_id]
                return None
            return draft

    def discard(self, draft_id: str) -> None:
        with self._lock:
            self._drafts.pop(draft_id, None)

    def _purge(self, now: float) -> None:
        expired = [key for key, draft in self._drafts.items() if draft.expires_at <= now]
        for key in expired:
            del self._drafts[key]
