"""Draft -> canonical conversion at the commit boundary."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from hquant.domain.model import (
    DEFAULT_GROUP,
    DEFAULT_UNIT,
    CatalogRecord,
    Composicao,
    Insumo,
    InsumoTipo,
    RecordKind,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

    from hquant.domain.model import CandidateRecord


class RecordFactory[TRecord: CatalogRecord](Protocol):
    """Validate drafts and materialise them as records of one kind."""

    @property
    def kind(self) -> RecordKind: ...

    def validate(self, draft: CandidateRecord, *, for_update: bool) -> str | None:
        """Return the reason ``draft`` cannot be committed, or ``None``."""
        ...

    def build(
        self,
        draft: CandidateRecord,
        *,
        at: datetime,
        existing: Mapping[str, TRecord],
    ) -> TRecord: ...

    def apply_update(self, record: TRecord, draft: CandidateRecord, *, at: datetime) -> None: ...


def _validate_common(draft: CandidateRecord, *, for_update: bool) -> str | None:
    if not for_update and not (draft.name or "").strip():
        return "missing name"
    if draft.value is None:
        return "missing value"
    if draft.value < 0:
        return "negative value"
    return None


def _require_value(draft: CandidateRecord) -> float:
    if draft.value is None:
        raise ValueError(f"Draft {draft.id} has no value to commit")
    return draft.value


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


class InsumoFactory:
    kind = RecordKind.INSUMO

    def validate(self, draft: CandidateRecord, *, for_update: bool) -> str | None:
        return _validate_common(draft, for_update=for_update)

    def build(
        self,
        draft: CandidateRecord,
        *,
        at: datetime,
        existing: Mapping[str, Insumo],
    ) -> Insumo:
        _ = existing
        return Insumo.create(
            value=_require_value(draft),
            at=at,
            name=(draft.name or "").strip(),
            unit=_clean(draft.unit) or DEFAULT_UNIT,
            tipo=InsumoTipo.parse(draft.classification),
            brand=_clean(draft.brand),
            annotation=_clean(draft.annotation),
        )

    def apply_update(self, record: Insumo, draft: CandidateRecord, *, at: datetime) -> None:
        record.record_value(_require_value(draft), at=at)
        annotation = _clean(draft.annotation)
        if annotation is not None:
            record.annotation = annotation
        brand = _clean(draft.brand)
        if brand is not None:
            record.brand = brand


class ComposicaoFactory:
    kind = RecordKind.COMPOSICAO

    def validate(self, draft: CandidateRecord, *, for_update: bool) -> str | None:
        return _validate_common(draft, for_update=for_update)

    def build(
        self,
        draft: CandidateRecord,
        *,
        at: datetime,
        existing: Mapping[str, Composicao],
    ) -> Composicao:
        value = _require_value(draft)
        grupo = _clean(draft.group) or DEFAULT_GROUP
        subgrupo = _clean(draft.subgroup) or DEFAULT_GROUP
        return Composicao.create(
            value=value,
            at=at,
            name=(draft.name or "").strip(),
            unit=_clean(draft.unit) or DEFAULT_UNIT,
            annotation=_clean(draft.annotation),
            codigo=next_composition_code(existing.values(), grupo, subgrupo),
            grupo=grupo,
            subgrupo=subgrupo,
            quantidade_referencia=draft.quantity,
            details=dict(draft.details),
        )

    def apply_update(self, record: Composicao, draft: CandidateRecord, *, at: datetime) -> None:
        record.record_value(_require_value(draft), at=at)
        annotation = _clean(draft.annotation)
        if annotation is not None:
            record.annotation = annotation


def next_composition_code(
    compositions: Iterable[Composicao],
    grupo: str,
    subgrupo: str,
) -> str:
    """``GRUPO-SUBGRUPO-NN`` with NN one past the highest sequence in that subgroup."""

    highest = max(
        (c.code_sequence() for c in compositions if c.grupo == grupo and c.subgrupo == subgrupo),
        default=0,
    )
    return f"{grupo}-{subgrupo}-{highest + 1:02d}"


def factory_for(kind: RecordKind) -> InsumoFactory | ComposicaoFactory:
    if kind is RecordKind.INSUMO:
        return InsumoFactory()
    return ComposicaoFactory()


if TYPE_CHECKING:
    _insumo_factory_check: RecordFactory[Insumo] = InsumoFactory()
    _composicao_factory_check: RecordFactory[Composicao] = ComposicaoFactory()
