"""One batch import, from raw text to a committed catalog change.

The session owns the review queue for a batch, turns its decisions into a
staging collection once every candidate is resolved, and hands that staging
to the catalog store on commit. The catalog is never touched before
:meth:`ImportSession.commit`, so cancelling at any point leaves it as it was.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from hquant.domain.errors import (
    AdapterError,
    ImportAbortedError,
    InvalidInputError,
    InvalidTransitionError,
    MalformedResponseError,
)
from hquant.domain.model import CatalogRecord, assign_temp_ids

from .queue import ReviewQueue, ReviewState
from .staging import StagingCollection

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from hquant.domain.catalog import Catalog
    from hquant.domain.model import CandidateRecord, MatchResult
    from hquant.domain.ports import BatchMatcher, CandidateExtractor, CandidateReviser, ImageInput

    from .commit import CommitResult
    from .queue import PendingReview
    from .staging import StagedItem

log = getLogger(__name__)

NOTHING_TO_IMPORT = "nothing to import"
_LOADABLE = frozenset({ReviewState.IDLE, ReviewState.DONE, ReviewState.CANCELLED})


class ImportSession[TRecord: CatalogRecord]:
    """Drive parse, match, review and commit for one batch at a time.

    ``state`` follows ``Idle -> AwaitingAdapter -> AwaitingUserDecision* ->
    Committing -> Done`` (or ``Cancelled``). While in ``Committing`` the
    staged drafts can still be edited, revised or discarded; :meth:`commit`
    applies them.
    """

    def __init__(
        self,
        catalog: Catalog[TRecord],
        *,
        extractor: CandidateExtractor,
        matcher: BatchMatcher,
        reviser: CandidateReviser | None = None,
        min_score: int = 0,
    ) -> None:
        self._catalog = catalog
        self._extractor = extractor
        self._matcher = matcher
        self._reviser = reviser
        self._min_score = min_score
        self._state = ReviewState.IDLE
        self._queue: ReviewQueue[TRecord] | None = None
        self._staging: StagingCollection | None = None
        self.notices: list[str] = []

    @property
    def state(self) -> ReviewState:
        return self._state

    @property
    def catalog(self) -> Catalog[TRecord]:
        return self._catalog

    @property
    def pending(self) -> PendingReview | None:
        if self._queue is None:
            return None
        return self._queue.pending

    @property
    def candidates(self) -> tuple[CandidateRecord, ...]:
        if self._queue is None:
            return ()
        return self._queue.candidates

    @property
    def staged(self) -> tuple[StagedItem, ...]:
        if self._staging is None:
            return ()
        return self._staging.items

    @property
    def staging(self) -> StagingCollection:
        if self._staging is None or self._state is not ReviewState.COMMITTING:
            raise InvalidTransitionError(f"Nothing is staged ({self._state})")
        return self._staging

    async def load(self, raw_text: str, *, image: ImageInput | None = None) -> ReviewState:
        """Parse and match one batch, then walk the queue up to the first suspend point."""

        if self._state not in _LOADABLE:
            raise InvalidTransitionError(f"Cannot load a batch while {self._state}")
        if not raw_text.strip() and image is None:
            raise InvalidInputError("Nothing to parse: the input text is blank")

        self._reset()
        self._state = ReviewState.AWAITING_ADAPTER
        snapshot = self._catalog.snapshot()
        try:
            candidates = _with_batch_ids(await self._extractor(raw_text, image=image))
            alert = next((c for c in candidates if c.is_invalid_input_alert), None)
            if alert is not None:
                raise InvalidInputError(alert.annotation or "Input not recognised")
            matches: list[MatchResult] = []
            if candidates and snapshot:
                matches = await self._matcher(candidates, list(snapshot.values()))
        except (AdapterError, MalformedResponseError) as exc:
            self._state = ReviewState.IDLE
            log.warning("Import aborted during %s: %s", exc.operation, exc)
            raise ImportAbortedError(f"Import aborted: {exc}", cause=exc) from exc
        except BaseException:
            self._state = ReviewState.IDLE
            raise

        kept = self._filter_matches(candidates, matches)
        log.info(
            "Parsed %s candidate(s), %s usable match(es) against %s record(s)",
            len(candidates),
            len(kept),
            len(snapshot),
        )
        self._queue = ReviewQueue(candidates, kept, snapshot)
        return self._follow(self._queue.start())

    def confirm_merge(self) -> ReviewState:
        return self._follow(self._require_queue().confirm_merge())

    def add_as_new(self) -> ReviewState:
        return self._follow(self._require_queue().add_as_new())

    def cancel(self) -> ReviewState:
        """Drop the batch and every decision taken on it."""

        if self._state is ReviewState.AWAITING_USER_DECISION:
            self._require_queue().cancel()
        elif self._state is not ReviewState.COMMITTING:
            raise InvalidTransitionError(f"Nothing to cancel ({self._state})")
        if self._staging is not None:
            self._staging.clear()
        self._state = ReviewState.CANCELLED
        self.notices.append("import cancelled")
        return self._state

    async def revise(self, candidate_id: str, instruction: str) -> StagedItem:
        if self._reviser is None:
            raise InvalidTransitionError("No revision collaborator configured")
        return await self.staging.revise(candidate_id, instruction, reviser=self._reviser)

    def commit(self, *, now: datetime | None = None) -> CommitResult[TRecord]:
        staging = self.staging
        result = self._catalog.commit(staging, now=now)
        staging.clear()
        self._state = ReviewState.DONE
        self.notices.append(result.summary())
        return result

    def _reset(self) -> None:
        self._queue = None
        self._staging = None
        self.notices = []

    def _require_queue(self) -> ReviewQueue[TRecord]:
        if self._queue is None:
            raise InvalidTransitionError(f"No batch under review ({self._state})")
        return self._queue

    def _follow(self, queue_state: ReviewState) -> ReviewState:
        queue = self._require_queue()
        if queue_state is not ReviewState.DONE:
            self._state = queue_state
            return self._state
        if queue.is_empty_batch:
            self.notices.append(NOTHING_TO_IMPORT)
            self._state = ReviewState.DONE
            return self._state
        self._staging = StagingCollection(queue.candidates, queue.decisions)
        self._state = ReviewState.COMMITTING
        log.debug(
            "Staged %s decision(s), %s auto-resolved as new",
            len(self._staging),
            queue.auto_resolved,
        )
        return self._state

    def _filter_matches(
        self,
        candidates: Sequence[CandidateRecord],
        matches: Sequence[MatchResult],
    ) -> list[MatchResult]:
        ids = {candidate.id for candidate in candidates}
        kept: list[MatchResult] = []
        for match in matches:
            if match.candidate_id not in ids:
                log.debug("Ignoring match for unknown candidate %s", match.candidate_id)
                continue
            if match.score < self._min_score:
                continue
            kept.append(match)
        return kept


def _with_batch_ids(candidates: Sequence[CandidateRecord]) -> list[CandidateRecord]:
    ids = [candidate.id for candidate in candidates]
    if all(ids) and len(set(ids)) == len(ids):
        return list(candidates)
    return assign_temp_ids(candidates)
