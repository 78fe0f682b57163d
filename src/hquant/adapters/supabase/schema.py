"""Pydantic models for rows of the hosted ``insumos`` and ``composicoes`` tables."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SupabaseBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PriceHistoryEntry(SupabaseBaseModel):
    date: datetime
    cost: float


class InsumoRow(SupabaseBaseModel):
    id: str
    nome: str
    unidade: str = "un"
    custo: float | None = None
    tipo: str | None = None
    marca: str | None = None
    observacao: str | None = None
    price_history: list[PriceHistoryEntry] = Field(
        default_factory=list[PriceHistoryEntry], alias="priceHistory"
    )


class ComposicaoRow(BaseModel):
    """Structured composition content is stored as extra JSON columns."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    codigo: str = ""
    titulo: str
    unidade: str = "un"
    quantidade_referencia: float | None = Field(default=None, alias="quantidadeReferencia")
    grupo: str | None = None
    subgrupo: str | None = None
    observacao: str | None = None
    price_history: list[PriceHistoryEntry] = Field(
        default_factory=list[PriceHistoryEntry], alias="priceHistory"
    )

    def extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})
