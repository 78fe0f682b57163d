"""Convert between hosted table rows and catalog records."""

from __future__ import annotations

from datetime import UTC
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

from pydantic import ValidationError

from hquant.domain.errors import MalformedResponseError
from hquant.domain.model import (
    DEFAULT_GROUP,
    Composicao,
    Insumo,
    InsumoTipo,
    PriceEntry,
    utcnow,
)

from .schema import ComposicaoRow, InsumoRow, PriceHistoryEntry

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from hquant.domain.model import CatalogRecord

log = getLogger(__name__)


def _history(entries: Sequence[PriceHistoryEntry], fallback: float | None) -> list[PriceEntry]:
    history = [
        PriceEntry(at=_aware(entry.date), value=entry.cost)
        for entry in sorted(entries, key=lambda entry: _aware(entry.date))
    ]
    if not history:
        # rows written before price tracking only carry the current cost
        history.append(PriceEntry(at=utcnow(), value=fallback or 0.0))
    return history


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _history_json(record: CatalogRecord) -> list[dict[str, object]]:
    return [{"date": entry.at.isoformat(), "cost": entry.value} for entry in record.history]


def insumo_from_row(row: object) -> Insumo:
    try:
        payload = InsumoRow.model_validate(row)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"Unexpected insumo row: {exc.error_count()} error(s)", operation="fetch_all"
        ) from exc
    return Insumo.restore(
        history=_history(payload.price_history, payload.custo),
        id=payload.id,
        name=payload.nome,
        unit=payload.unidade,
        tipo=InsumoTipo.parse(payload.tipo),
        brand=payload.marca,
        annotation=payload.observacao,
    )


def insumo_to_row(record: Insumo) -> dict[str, object]:
    return {
        "id": record.id,
        "nome": record.name,
        "unidade": record.unit,
        "custo": record.value,
        "tipo": record.tipo.value,
        "marca": record.brand,
        "observacao": record.annotation,
        "price_history": _history_json(record),
    }


def composicao_from_row(row: object) -> Composicao:
    try:
        payload = ComposicaoRow.model_validate(row)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"Unexpected composition row: {exc.error_count()} error(s)", operation="fetch_all"
        ) from exc
    details = payload.extras()
    indicadores = cast(dict[str, Any], details.get("indicadores") or {})
    fallback = indicadores.get("custoDiretoTotal_porUnidade")
    return Composicao.restore(
        history=_history(
            payload.price_history, float(fallback) if fallback is not None else None
        ),
        id=payload.id,
        name=payload.titulo,
        unit=payload.unidade,
        annotation=payload.observacao,
        codigo=payload.codigo,
        grupo=payload.grupo or DEFAULT_GROUP,
        subgrupo=payload.subgrupo or DEFAULT_GROUP,
        quantidade_referencia=payload.quantidade_referencia,
        details=details,
    )


def composicao_to_row(record: Composicao) -> dict[str, object]:
    details = dict(record.details)
    indicadores = dict(cast(dict[str, Any], details.pop("indicadores", None) or {}))
    indicadores["custoDiretoTotal_porUnidade"] = record.value
    return {
        **details,
        "id": record.id,
        "codigo": record.codigo,
        "titulo": record.name,
        "unidade": record.unit,
        "quantidadeReferencia": record.quantidade_referencia,
        "grupo": record.grupo,
        "subgrupo": record.subgrupo,
        "observacao": record.annotation,
        "indicadores": indicadores,
        "price_history": _history_json(record),
    }
