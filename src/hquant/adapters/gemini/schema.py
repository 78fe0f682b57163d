"""Pydantic models for Gemini REST payloads and the JSON the prompts ask for."""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _lenient_number(value: object) -> object:
    """Accept ``"1,30"`` / ``"R$ 1.30"`` style numbers the model sometimes returns."""
    if isinstance(value, str):
        cleaned = value.replace("R$", "").strip()
        if not cleaned:
            return None
        if "," in cleaned:
            cleaned = cleaned.replace(".", "").replace(",", ".")
        return cleaned
    return value


class GeminiBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# generateContent envelope ---------------------------------------------------


class Part(GeminiBaseModel):
    text: str | None = None


class Content(GeminiBaseModel):
    parts: list[Part] = Field(default_factory=list[Part])
    role: str | None = None


class ResponseCandidate(GeminiBaseModel):
    content: Content | None = None
    finish_reason: str | None = Field(default=None, alias="finishReason")


class GenerateContentResponse(GeminiBaseModel):
    candidates: list[ResponseCandidate] = Field(default_factory=list[ResponseCandidate])

    @property
    def text(self) -> str | None:
        for candidate in self.candidates:
            if candidate.content is None:
                continue
            for part in candidate.content.parts:
                if part.text:
                    return part.text
        return None


class ErrorDetail(GeminiBaseModel):
    code: int | None = None
    message: str = ""
    status: str | None = None


class ErrorResponse(GeminiBaseModel):
    error: ErrorDetail


# extraction payloads --------------------------------------------------------


class ImportAnalysis(GeminiBaseModel):
    nota: str | None = None
    nota_da_importacao: str | None = Field(default=None, alias="notaDaImportacao")


class InsumoPayload(GeminiBaseModel):
    nome: str | None = None
    unidade: str | None = None
    custo: float | None = None
    tipo: str | None = None
    marca: str | None = None
    observacao: str | None = None
    analise_engenheiro: ImportAnalysis | None = Field(default=None, alias="analiseEngenheiro")

    _normalize_text = field_validator(
        "nome", "unidade", "tipo", "marca", "observacao", mode="before"
    )(_blank_to_none)
    _normalize_cost = field_validator("custo", mode="before")(_lenient_number)


class Indicadores(GeminiBaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    custo_direto_por_unidade: float | None = Field(
        default=None, alias="custoDiretoTotal_porUnidade"
    )

    _normalize_cost = field_validator("custo_direto_por_unidade", mode="before")(_lenient_number)


class ComposicaoPayload(BaseModel):
    """One composition; fields the domain does not model are kept as extras."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    titulo: str | None = None
    unidade: str | None = None
    quantidade_referencia: float | None = Field(default=None, alias="quantidadeReferencia")
    grupo: str | None = None
    subgrupo: str | None = None
    indicadores: Indicadores | None = None
    analise_engenheiro: ImportAnalysis | None = Field(default=None, alias="analiseEngenheiro")

    _normalize_text = field_validator("titulo", "unidade", "grupo", "subgrupo", mode="before")(
        _blank_to_none
    )
    _normalize_quantity = field_validator("quantidade_referencia", mode="before")(_lenient_number)

    def extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


# batch match payloads -------------------------------------------------------


def _clamp_score(value: object) -> object:
    if isinstance(value, str):
        value = _lenient_number(value.rstrip("%"))
    if isinstance(value, str):
        value = float(value)
    if isinstance(value, int | float):
        if not math.isfinite(value):
            raise ValueError(f"score is not a finite number: {value}")
        return max(0, min(100, round(value)))
    return value


class InsumoMatchPayload(GeminiBaseModel):
    new_insumo_id: str = Field(alias="newInsumoId")
    existing_insumo_id: str = Field(alias="existingInsumoId")
    similarity_score: int = Field(alias="similarityScore")
    motivo: str = ""

    _clamp = field_validator("similarity_score", mode="before")(_clamp_score)


class InsumoMatchResponse(GeminiBaseModel):
    resultados: list[InsumoMatchPayload] = Field(default_factory=list[InsumoMatchPayload])


class CompositionCandidatePayload(GeminiBaseModel):
    id_existente: str = Field(alias="idExistente")
    titulo: str | None = None
    escopo_resumido: str | None = Field(default=None, alias="escopoResumido")
    relevancia_score: int = Field(alias="relevanciaScore")
    motivo: str = ""

    _clamp = field_validator("relevancia_score", mode="before")(_clamp_score)


class CompositionRelevancePayload(GeminiBaseModel):
    id_nova_composicao: str = Field(alias="idNovaComposicao")
    candidatos: list[CompositionCandidatePayload] = Field(
        default_factory=list[CompositionCandidatePayload]
    )


class CompositionMatchResponse(GeminiBaseModel):
    resultados: list[CompositionRelevancePayload] = Field(
        default_factory=list[CompositionRelevancePayload]
    )
