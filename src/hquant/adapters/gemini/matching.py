"""Batch similarity calls backed by Gemini."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, ClassVar

from hquant.domain.model import Composicao, Insumo
from hquant.domain.ports import BatchMatcher

from . import prompts
from .client import GeminiClient
from .translator import (
    composition_catalog_entry,
    draft_entry,
    insumo_catalog_entry,
    parse_composition_matches,
    parse_insumo_matches,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from hquant.domain.model import CandidateRecord, CatalogRecord, MatchResult

log = getLogger(__name__)


@dataclass(slots=True)
class GeminiInsumoMatcher:
    """One call scoring every new insumo against the whole catalog."""

    client: GeminiClient = field(default_factory=GeminiClient)

    operation: ClassVar[str] = "match_insumos"

    async def __call__(
        self,
        candidates: Sequence[CandidateRecord],
        catalog: Sequence[CatalogRecord],
    ) -> list[MatchResult]:
        if not candidates or not catalog:
            return []
        payload = {
            "newInsumos": [draft_entry(c, name_key="nome") for c in candidates],
            "existingInsumos": [
                insumo_catalog_entry(record) for record in catalog if isinstance(record, Insumo)
            ],
        }
        answer = await self.client.generate(
            prompts.with_payload(prompts.INSUMO_MATCH, payload), operation=self.operation
        )
        matches = parse_insumo_matches(
            answer, candidates=candidates, catalog=catalog, operation=self.operation
        )
        log.info("Similarity call returned %s pair(s)", len(matches))
        return matches


@dataclass(slots=True)
class GeminiCompositionMatcher:
    client: GeminiClient = field(default_factory=GeminiClient)

    operation: ClassVar[str] = "match_compositions"

    async def __call__(
        self,
        candidates: Sequence[CandidateRecord],
        catalog: Sequence[CatalogRecord],
    ) -> list[MatchResult]:
        if not candidates or not catalog:
            return []
        payload = {
            "newCompositions": [draft_entry(c, name_key="titulo") for c in candidates],
            "existingCompositions": [
                composition_catalog_entry(record)
                for record in catalog
                if isinstance(record, Composicao)
            ],
        }
        answer = await self.client.generate(
            prompts.with_payload(prompts.COMPOSITION_MATCH, payload), operation=self.operation
        )
        matches = parse_composition_matches(
            answer, candidates=candidates, catalog=catalog, operation=self.operation
        )
        log.info("Relevance call returned %s candidate(s)", len(matches))
        return matches


if TYPE_CHECKING:
    _insumo_matcher_check: BatchMatcher = GeminiInsumoMatcher()
    _composition_matcher_check: BatchMatcher = GeminiCompositionMatcher()
