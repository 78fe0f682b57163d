"""Turn model answers into drafts and match results, and drafts back into JSON."""

from __future__ import annotations

import json
import re
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

from pydantic import ValidationError

from hquant.domain.errors import MalformedResponseError
from hquant.domain.model import CandidateRecord, MatchResult, temp_id

from .schema import (
    ComposicaoPayload,
    CompositionMatchResponse,
    InsumoMatchPayload,
    InsumoMatchResponse,
    InsumoPayload,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from hquant.domain.model import CatalogRecord, Composicao, Insumo

log = getLogger(__name__)

_FENCE_OPEN = "```json"
_FENCE = "```"
_INVALID_ESCAPE = re.compile(r'\\(?!["\\/bfnrtu])')
_COMPOSITION_CORE_FIELDS = frozenset(
    {"titulo", "unidade", "quantidadeReferencia", "grupo", "subgrupo", "analiseEngenheiro"}
)


def fix_invalid_escapes(text: str) -> str:
    """Drop backslashes that do not start a valid JSON escape."""
    return _INVALID_ESCAPE.sub("", text)


def extract_json_block(text: str) -> str:
    """Isolate the JSON payload from a model answer that may wrap it in a code fence."""

    start = text.find(_FENCE_OPEN)
    if start != -1:
        start += len(_FENCE_OPEN)
        end = text.rfind(_FENCE)
        if end > start:
            text = text[start:end]
    text = text.replace(_FENCE_OPEN, "").replace(_FENCE, "").strip()
    return fix_invalid_escapes(text)


def load_json(text: str, *, operation: str) -> object:
    cleaned = extract_json_block(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        log.debug("Unparseable %s answer: %s", operation, cleaned[:500])
        raise MalformedResponseError(
            f"Answer is not valid JSON: {exc.msg}", operation=operation, raw=text
        ) from exc


def _as_list(payload: object, *, key: str, operation: str, raw: str) -> list[object]:
    if isinstance(payload, list):
        return cast(list[object], payload)
    if isinstance(payload, dict):
        mapping = cast(dict[str, object], payload)
        if isinstance(mapping.get(key), list):
            return cast(list[object], mapping[key])
        return [mapping]
    raise MalformedResponseError(
        f"Expected a list of {key}, got {type(payload).__name__}", operation=operation, raw=raw
    )


def _note(payload: InsumoPayload | ComposicaoPayload) -> str | None:
    analysis = payload.analise_engenheiro
    if analysis is None:
        return None
    return analysis.nota_da_importacao or analysis.nota


# extraction -----------------------------------------------------------------


def parse_insumo_candidates(text: str, *, operation: str = "extract") -> list[CandidateRecord]:
    answer = load_json(text, operation=operation)
    items = _as_list(answer, key="insumos", operation=operation, raw=text)
    candidates: list[CandidateRecord] = []
    for index, item in enumerate(items):
        try:
            payload = InsumoPayload.model_validate(item)
        except ValidationError as exc:
            raise MalformedResponseError(
                f"Insumo {index} has an unexpected shape: {exc.error_count()} error(s)",
                operation=operation,
                raw=text,
            ) from exc
        candidates.append(insumo_candidate(payload, candidate_id=temp_id(index)))
    return candidates


def insumo_candidate(payload: InsumoPayload, *, candidate_id: str) -> CandidateRecord:
    return CandidateRecord(
        id=candidate_id,
        name=payload.nome,
        unit=payload.unidade,
        value=payload.custo,
        classification=payload.tipo,
        brand=payload.marca,
        annotation=payload.observacao or _note(payload),
    )


def parse_composition_candidates(
    text: str,
    *,
    operation: str = "extract",
) -> list[CandidateRecord]:
    answer = load_json(text, operation=operation)
    items = _as_list(answer, key="composicoes", operation=operation, raw=text)
    candidates: list[CandidateRecord] = []
    for index, item in enumerate(items):
        try:
            payload = ComposicaoPayload.model_validate(item)
        except ValidationError as exc:
            raise MalformedResponseError(
                f"Composition {index} has an unexpected shape: {exc.error_count()} error(s)",
                operation=operation,
                raw=text,
            ) from exc
        candidates.append(composition_candidate(payload, candidate_id=temp_id(index)))
    return candidates


def composition_candidate(payload: ComposicaoPayload, *, candidate_id: str) -> CandidateRecord:
    details = payload.extras()
    if payload.indicadores is not None:
        details["indicadores"] = payload.indicadores.model_dump(by_alias=True, exclude_none=True)
    value = payload.indicadores.custo_direto_por_unidade if payload.indicadores else None
    return CandidateRecord(
        id=candidate_id,
        name=payload.titulo,
        unit=payload.unidade,
        value=value,
        classification=_classification(payload.grupo, payload.subgrupo),
        annotation=_note(payload),
        group=payload.grupo,
        subgroup=payload.subgrupo,
        quantity=payload.quantidade_referencia,
        details=details,
    )


def _classification(grupo: str | None, subgrupo: str | None) -> str | None:
    if grupo is None and subgrupo is None:
        return None
    return f"{grupo or ''}/{subgrupo or ''}"


# revision -------------------------------------------------------------------


def insumo_to_json(candidate: CandidateRecord) -> dict[str, object]:
    return {
        "nome": candidate.name,
        "unidade": candidate.unit,
        "custo": candidate.value,
        "tipo": candidate.classification,
        "marca": candidate.brand,
        "observacao": candidate.annotation,
    }


def composition_to_json(candidate: CandidateRecord) -> dict[str, object]:
    details = {k: v for k, v in candidate.details.items() if k not in _COMPOSITION_CORE_FIELDS}
    indicadores = dict(cast(dict[str, Any], details.pop("indicadores", None) or {}))
    if candidate.value is not None:
        indicadores["custoDiretoTotal_porUnidade"] = candidate.value
    payload: dict[str, object] = {
        "titulo": candidate.name,
        "unidade": candidate.unit,
        "quantidadeReferencia": candidate.quantity,
        "grupo": candidate.group,
        "subgrupo": candidate.subgroup,
        **details,
        "indicadores": indicadores,
    }
    if candidate.annotation:
        payload["analiseEngenheiro"] = {"notaDaImportacao": candidate.annotation}
    return payload


# batch matching -------------------------------------------------------------


def insumo_catalog_entry(record: Insumo) -> dict[str, object]:
    return {
        "id": record.id,
        "nome": record.name,
        "unidade": record.unit,
        "tipo": record.tipo.value,
        "marca": record.brand,
    }


def composition_catalog_entry(record: Composicao) -> dict[str, object]:
    return {"id": record.id, "titulo": record.name, "escopo": record.escopo}


def draft_entry(candidate: CandidateRecord, *, name_key: str) -> dict[str, object]:
    entry: dict[str, object] = {"id": candidate.id, name_key: candidate.name}
    if candidate.unit:
        entry["unidade"] = candidate.unit
    return entry


def parse_insumo_matches(
    text: str,
    *,
    candidates: Sequence[CandidateRecord],
    catalog: Sequence[CatalogRecord],
    operation: str = "match",
) -> list[MatchResult]:
    payload = load_json(text, operation=operation)
    try:
        if isinstance(payload, list):
            items = cast(list[object], payload)
            pairs = [InsumoMatchPayload.model_validate(item) for item in items]
        else:
            pairs = InsumoMatchResponse.model_validate(payload).resultados
    except ValidationError as exc:
        raise MalformedResponseError(
            "Similarity answer has an unexpected shape", operation=operation, raw=text
        ) from exc
    known = _Known(candidates, catalog)
    return [
        MatchResult(
            candidate_id=pair.new_insumo_id,
            existing_id=pair.existing_insumo_id,
            score=pair.similarity_score,
            rationale=pair.motivo,
        )
        for pair in pairs
        if known.accepts(pair.new_insumo_id, pair.existing_insumo_id)
    ]


def parse_composition_matches(
    text: str,
    *,
    candidates: Sequence[CandidateRecord],
    catalog: Sequence[CatalogRecord],
    operation: str = "match",
) -> list[MatchResult]:
    payload = load_json(text, operation=operation)
    try:
        response = CompositionMatchResponse.model_validate(payload)
    except ValidationError as exc:
        raise MalformedResponseError(
            "Relevance answer has an unexpected shape", operation=operation, raw=text
        ) from exc
    known = _Known(candidates, catalog)
    results: list[MatchResult] = []
    for entry in response.resultados:
        for candidate in entry.candidatos:
            if not known.accepts(entry.id_nova_composicao, candidate.id_existente):
                continue
            results.append(
                MatchResult(
                    candidate_id=entry.id_nova_composicao,
                    existing_id=candidate.id_existente,
                    score=candidate.relevancia_score,
                    rationale=candidate.motivo,
                )
            )
    return results


class _Known:
    """Filter out ids the model made up."""

    def __init__(
        self,
        candidates: Sequence[CandidateRecord],
        catalog: Sequence[CatalogRecord],
    ) -> None:
        self.candidate_ids = {candidate.id for candidate in candidates}
        self.record_ids = {record.id for record in catalog}

    def accepts(self, candidate_id: str, record_id: str) -> bool:
        if candidate_id in self.candidate_ids and record_id in self.record_ids:
            return True
        log.debug("Ignoring match %s -> %s: unknown id", candidate_id, record_id)
        return False
