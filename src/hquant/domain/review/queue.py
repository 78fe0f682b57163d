"""Sequential review queue over one import batch.

Candidates are walked in input order. Those without a usable match are
staged as ``new`` right away; a match whose target still exists in the
catalog snapshot suspends the walk until the user confirms the merge, adds
the candidate as new, or cancels the whole batch.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from hquant.domain.errors import InvalidTransitionError
from hquant.domain.model import CatalogRecord, ReviewDecision, best_matches

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from hquant.domain.model import CandidateRecord, MatchResult

log = getLogger(__name__)


class ReviewState(StrEnum):
    IDLE = "idle"
    AWAITING_ADAPTER = "awaiting_adapter"
    AWAITING_USER_DECISION = "awaiting_user_decision"
    COMMITTING = "committing"
    DONE = "done"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class QueueItem:
    candidate: CandidateRecord
    match: MatchResult | None = None


@dataclass(frozen=True, slots=True)
class PendingReview:
    """What the user is asked about while the queue is suspended."""

    candidate: CandidateRecord
    existing: CatalogRecord
    match: MatchResult

    @property
    def score(self) -> int:
        return self.match.score

    @property
    def rationale(self) -> str:
        return self.match.rationale


class ReviewQueue[TRecord: CatalogRecord]:
    """Resolve every candidate of a batch into exactly one ``ReviewDecision``."""

    def __init__(
        self,
        candidates: Sequence[CandidateRecord],
        matches: Sequence[MatchResult],
        snapshot: Mapping[str, TRecord],
    ) -> None:
        best = best_matches(matches)
        self._snapshot = snapshot
        self._candidates = tuple(candidates)
        self._queue: deque[QueueItem] = deque(
            QueueItem(candidate=candidate, match=best.get(candidate.id))
            for candidate in candidates
        )
        self._decisions: list[ReviewDecision] = []
        self._pending: PendingReview | None = None
        self._state = ReviewState.IDLE
        self.auto_resolved = 0

    @property
    def state(self) -> ReviewState:
        return self._state

    @property
    def pending(self) -> PendingReview | None:
        return self._pending

    @property
    def candidates(self) -> tuple[CandidateRecord, ...]:
        return self._candidates

    @property
    def decisions(self) -> tuple[ReviewDecision, ...]:
        return tuple(self._decisions)

    @property
    def remaining(self) -> int:
        return len(self._queue)

    @property
    def is_empty_batch(self) -> bool:
        return not self._candidates

    def start(self) -> ReviewState:
        if self._state is not ReviewState.IDLE:
            raise InvalidTransitionError(f"Queue already started ({self._state})")
        return self._advance()

    def confirm_merge(self) -> ReviewState:
        pending = self._require_pending("confirm_merge")
        self._decisions.append(ReviewDecision.update(pending.candidate.id, pending.existing.id))
        return self._advance()

    def add_as_new(self) -> ReviewState:
        pending = self._require_pending("add_as_new")
        self._decisions.append(ReviewDecision.new(pending.candidate.id))
        return self._advance()

    def cancel(self) -> ReviewState:
        """Discard the rest of the queue and every decision taken so far."""
        if self._state in {ReviewState.DONE, ReviewState.CANCELLED}:
            raise InvalidTransitionError(f"Cannot cancel a {self._state} queue")
        log.info(
            "Review cancelled with %s decision(s) taken and %s candidate(s) left",
            len(self._decisions),
            len(self._queue),
        )
        self._queue.clear()
        self._decisions.clear()
        self._pending = None
        self._state = ReviewState.CANCELLED
        return self._state

    def _require_pending(self, action: str) -> PendingReview:
        if self._state is not ReviewState.AWAITING_USER_DECISION or self._pending is None:
            raise InvalidTransitionError(f"{action} requires a pending review ({self._state})")
        return self._pending

    def _advance(self) -> ReviewState:
        self._pending = None
        while self._queue:
            item = self._queue.popleft()
            match = item.match
            existing = self._resolve_target(item)
            if match is None or existing is None:
                self._decisions.append(ReviewDecision.new(item.candidate.id))
                self.auto_resolved += 1
                continue
            self._pending = PendingReview(
                candidate=item.candidate,
                existing=existing,
                match=match,
            )
            self._state = ReviewState.AWAITING_USER_DECISION
            return self._state
        self._state = ReviewState.DONE
        return self._state

    def _resolve_target(self, item: QueueItem) -> CatalogRecord | None:
        if item.match is None:
            return None
        existing = self._snapshot.get(item.match.existing_id)
        if existing is None:
            log.debug(
                "Match for %s points at missing record %s; staging as new",
                item.candidate.id,
                item.match.existing_id,
            )
        return existing
