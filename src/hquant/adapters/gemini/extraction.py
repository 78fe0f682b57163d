"""Extraction and revision calls backed by Gemini."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, ClassVar

from hquant.domain.errors import InvalidInputError, MalformedResponseError
from hquant.domain.model import RecordKind
from hquant.domain.ports import CandidateExtractor, CandidateReviser

from . import prompts
from .client import GeminiClient
from .translator import (
    composition_to_json,
    insumo_to_json,
    parse_composition_candidates,
    parse_insumo_candidates,
)

if TYPE_CHECKING:
    from hquant.domain.model import CandidateRecord
    from hquant.domain.ports import ImageInput

log = getLogger(__name__)


@dataclass(slots=True)
class GeminiInsumoExtractor:
    client: GeminiClient = field(default_factory=GeminiClient)

    operation: ClassVar[str] = "extract_insumos"

    async def __call__(
        self,
        raw_text: str,
        *,
        image: ImageInput | None = None,
    ) -> list[CandidateRecord]:
        if not raw_text.strip() and image is None:
            raise InvalidInputError("Nothing to parse: the input text is blank")
        answer = await self.client.generate(
            prompts.with_text(prompts.INSUMO_EXTRACTION, raw_text),
            image=image,
            operation=self.operation,
        )
        candidates = parse_insumo_candidates(answer, operation=self.operation)
        log.info("Extracted %s insumo candidate(s)", len(candidates))
        return candidates


@dataclass(slots=True)
class GeminiCompositionExtractor:
    client: GeminiClient = field(default_factory=GeminiClient)

    operation: ClassVar[str] = "extract_compositions"

    async def __call__(
        self,
        raw_text: str,
        *,
        image: ImageInput | None = None,
    ) -> list[CandidateRecord]:
        if not raw_text.strip() and image is None:
            raise InvalidInputError("Nothing to parse: the input text is blank")
        answer = await self.client.generate(
            prompts.with_text(prompts.COMPOSITION_EXTRACTION, raw_text),
            image=image,
            operation=self.operation,
        )
        candidates = parse_composition_candidates(answer, operation=self.operation)
        log.info("Extracted %s composition candidate(s)", len(candidates))
        return candidates


@dataclass(slots=True)
class GeminiReviser:
    """Re-interpret one staged draft; the candidate id is carried over unchanged."""

    kind: RecordKind
    client: GeminiClient = field(default_factory=GeminiClient)

    operation: ClassVar[str] = "revise"

    async def __call__(self, candidate: CandidateRecord, instruction: str) -> CandidateRecord:
        if not instruction.strip():
            raise ValueError("Revision instruction must not be blank")
        if self.kind is RecordKind.INSUMO:
            payload = insumo_to_json(candidate)
        else:
            payload = composition_to_json(candidate)
        answer = await self.client.generate(
            prompts.revision(payload, instruction), operation=self.operation
        )
        if self.kind is RecordKind.INSUMO:
            revised = parse_insumo_candidates(answer, operation=self.operation)
        else:
            revised = parse_composition_candidates(answer, operation=self.operation)
        if len(revised) != 1 or not (revised[0].name or "").strip():
            raise MalformedResponseError(
                "Revision did not return exactly one named record",
                operation=self.operation,
                raw=answer,
            )
        return revised[0].with_changes(id=candidate.id)


if TYPE_CHECKING:
    _insumo_extractor_check: CandidateExtractor = GeminiInsumoExtractor()
    _composition_extractor_check: CandidateExtractor = GeminiCompositionExtractor()
    _reviser_check: CandidateReviser = GeminiReviser(RecordKind.INSUMO)
