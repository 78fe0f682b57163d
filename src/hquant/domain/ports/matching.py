"""Port for the external batch similarity call."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from hquant.domain.model import CandidateRecord, CatalogRecord, MatchResult


@runtime_checkable
class BatchMatcher(Protocol):
    """Score a whole batch of candidates against the catalog in one call.

    The answer may hold several results per candidate; the domain keeps the best.
    """

    async def __call__(
        self,
        candidates: Sequence[CandidateRecord],
        catalog: Sequence[CatalogRecord],
    ) -> list[MatchResult]: ...


__all__ = ["BatchMatcher"]
