"""Staging collection: user-editable decisions waiting for commit."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from hquant.domain.errors import MalformedResponseError, RecordNotFoundError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from hquant.domain.model import CandidateRecord, ReviewDecision
    from hquant.domain.ports import CandidateReviser

log = getLogger(__name__)

EDITABLE_FIELDS: Final[frozenset[str]] = frozenset(
    {"name", "unit", "value", "classification", "brand", "annotation", "group", "subgroup"}
)


@dataclass(slots=True)
class StagedItem:
    decision: ReviewDecision
    draft: CandidateRecord

    @property
    def candidate_id(self) -> str:
        return self.decision.candidate_id


class StagingCollection:
    """Decisions paired with their drafts, correlated by candidate id end to end."""

    def __init__(
        self,
        candidates: Sequence[CandidateRecord],
        decisions: Sequence[ReviewDecision],
    ) -> None:
        by_id = {candidate.id: candidate for candidate in candidates}
        if len(by_id) != len(candidates):
            raise ValueError("candidate ids must be unique within a batch")
        decided = [decision.candidate_id for decision in decisions]
        if sorted(decided) != sorted(by_id):
            raise ValueError("decisions must cover every candidate exactly once")
        self._items: list[StagedItem] = [
            StagedItem(decision=decision, draft=by_id[decision.candidate_id])
            for decision in decisions
        ]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[StagedItem]:
        return iter(tuple(self._items))

    @property
    def items(self) -> tuple[StagedItem, ...]:
        return tuple(self._items)

    def get(self, candidate_id: str) -> StagedItem:
        for item in self._items:
            if item.candidate_id == candidate_id:
                return item
        raise RecordNotFoundError(f"No staged item for candidate {candidate_id}")

    def edit(self, candidate_id: str, **changes: Any) -> StagedItem:
        """Field-level correction of one staged draft."""

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")
        if changes.get("value") is not None:
            changes["value"] = float(changes["value"])
        item = self.get(candidate_id)
        item.draft = item.draft.with_changes(**changes)
        return item

    def discard(self, candidate_id: str) -> StagedItem:
        item = self.get(candidate_id)
        self._items.remove(item)
        return item

    async def revise(
        self,
        candidate_id: str,
        instruction: str,
        *,
        reviser: CandidateReviser,
    ) -> StagedItem:
        """Ask the revision call to re-interpret one draft; the decision is kept."""

        if not instruction.strip():
            raise ValueError("Revision instruction must not be blank")
        item = self.get(candidate_id)
        revised = await reviser(item.draft, instruction)
        if not (revised.name or "").strip():
            raise MalformedResponseError("Revised record has no name", operation="revise")
        item.draft = revised.with_changes(id=item.candidate_id)
        log.info("Revised staged candidate %s", candidate_id)
        return item

    def clear(self) -> None:
        self._items.clear()
