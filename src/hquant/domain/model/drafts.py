"""Batch-scoped, not yet validated records and the decisions taken on them."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from hquant.domain.model.enums import DecisionKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

INVALID_INPUT_MARKER = "Alerta:"
TEMP_ID_PREFIX = "temp-"


def temp_id(index: int) -> str:
    return f"{TEMP_ID_PREFIX}{index}"


@dataclass(slots=True, kw_only=True)
class CandidateRecord:
    """A parsed-but-unconfirmed insumo or composition.

    Every field but ``id`` may be missing; validation only happens when a
    staged decision is committed.
    """

    id: str
    name: str | None = None
    unit: str | None = None
    value: float | None = None
    classification: str | None = None
    brand: str | None = None
    annotation: str | None = None
    group: str | None = None
    subgroup: str | None = None
    quantity: float | None = None
    details: dict[str, Any] = field(default_factory=dict[str, Any], repr=False)

    @property
    def is_invalid_input_alert(self) -> bool:
        """The extraction call flags unrecognisable input with a nameless alert record."""
        return not (self.name or "").strip() and (self.annotation or "").lstrip().startswith(
            INVALID_INPUT_MARKER
        )

    def with_changes(self, **changes: Any) -> CandidateRecord:
        return replace(self, **changes)


def assign_temp_ids(candidates: Iterable[CandidateRecord]) -> list[CandidateRecord]:
    """Give every candidate of one batch a ``temp-<n>`` id in input order."""
    return [candidate.with_changes(id=temp_id(index)) for index, candidate in enumerate(candidates)]


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Best existing catalog record found for one candidate."""

    candidate_id: str
    existing_id: str
    score: int
    rationale: str = ""

    def __post_init__(self) -> None:
        if not 0 <= self.score <= 100:
            raise ValueError(f"similarity score must be within 0..100, got {self.score}")


def best_matches(matches: Sequence[MatchResult]) -> dict[str, MatchResult]:
    """Keep one match per candidate: highest score wins, ties keep the first seen."""

    best: dict[str, MatchResult] = {}
    for match in matches:
        current = best.get(match.candidate_id)
        if current is None or match.score > current.score:
            best[match.candidate_id] = match
    return best


@dataclass(frozen=True, slots=True)
class ReviewDecision:
    """Resolution of one candidate: commit as new, or apply onto ``target_id``."""

    kind: DecisionKind
    candidate_id: str
    target_id: str | None = None

    def __post_init__(self) -> None:
        if self.kind is DecisionKind.UPDATE and not self.target_id:
            raise ValueError("update decision requires a target id")
        if self.kind is DecisionKind.NEW and self.target_id is not None:
            raise ValueError("new decision cannot carry a target id")

    @classmethod
    def new(cls, candidate_id: str) -> ReviewDecision:
        return cls(kind=DecisionKind.NEW, candidate_id=candidate_id)

    @classmethod
    def update(cls, candidate_id: str, target_id: str) -> ReviewDecision:
        return cls(kind=DecisionKind.UPDATE, candidate_id=candidate_id, target_id=target_id)

    @property
    def is_update(self) -> bool:
        return self.kind is DecisionKind.UPDATE
