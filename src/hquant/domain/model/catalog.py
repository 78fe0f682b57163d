"""Canonical catalog records (insumos and compositions) with append-only value history."""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, ClassVar, Self

from hquant.domain.model.entity import Entity
from hquant.domain.model.enums import InsumoTipo, RecordKind

if TYPE_CHECKING:
    from collections.abc import Iterable

DEFAULT_UNIT = "un"
DEFAULT_GROUP = "GERAL"


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class PriceEntry:
    """One value a record held from ``at`` on."""

    at: datetime
    value: float


@dataclass(eq=False, kw_only=True)
class CatalogRecord(Entity):
    """Canonical record shared by insumos and compositions.

    The current value is never stored on its own: it is read from the last
    history entry, so ``value == history[-1].value`` holds by construction.
    """

    KIND: ClassVar[RecordKind]

    name: str
    unit: str = DEFAULT_UNIT
    annotation: str | None = None

    _history: list[PriceEntry] = field(default_factory=list["PriceEntry"], repr=False)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("catalog record requires a name")
        if not self._history:
            raise ValueError("catalog record requires at least one history entry")

    @classmethod
    def create(cls, *, value: float, at: datetime | None = None, **attrs: Any) -> Self:
        """Create a record whose history holds exactly one entry."""
        entry = PriceEntry(at=at or utcnow(), value=float(value))
        return cls(_history=[entry], **attrs)

    @classmethod
    def restore(cls, *, history: Iterable[PriceEntry], **attrs: Any) -> Self:
        """Rebuild a persisted record from its stored history."""
        return cls(_history=list(history), **attrs)

    @property
    def kind(self) -> RecordKind:
        return self.KIND

    @property
    def history(self) -> tuple[PriceEntry, ...]:
        return tuple(self._history)

    @property
    def value(self) -> float:
        return self._history[-1].value

    @property
    def updated_at(self) -> datetime:
        return self._history[-1].at

    @property
    @abstractmethod
    def classification(self) -> str: ...

    def record_value(self, value: float, *, at: datetime | None = None) -> PriceEntry:
        """Append a new history entry; past entries are never touched."""
        entry = PriceEntry(at=at or utcnow(), value=float(value))
        self._history.append(entry)
        return entry

    def matches(self, query: str) -> bool:
        needle = query.strip().casefold()
        if not needle:
            return True
        haystack = (self.name, self.classification, self.annotation or "")
        return any(needle in part.casefold() for part in haystack)


@dataclass(eq=False, kw_only=True)
class Insumo(CatalogRecord):
    """A priced input line-item: material, labour type or equipment."""

    KIND: ClassVar[RecordKind] = RecordKind.INSUMO

    tipo: InsumoTipo = InsumoTipo.MATERIAL
    brand: str | None = None

    @property
    def classification(self) -> str:
        return self.tipo.value

    def matches(self, query: str) -> bool:
        if super().matches(query):
            return True
        return bool(self.brand) and query.strip().casefold() in (self.brand or "").casefold()


@dataclass(eq=False, kw_only=True)
class Composicao(CatalogRecord):
    """A bill-of-quantities template for one construction task.

    The tracked value is the direct unit cost; the remaining structured
    content (premissas, insumos, mao de obra, indicadores...) lives in ``details``.
    """

    KIND: ClassVar[RecordKind] = RecordKind.COMPOSICAO

    codigo: str = ""
    grupo: str = DEFAULT_GROUP
    subgrupo: str = DEFAULT_GROUP
    quantidade_referencia: float | None = None
    details: dict[str, Any] = field(default_factory=dict[str, Any], repr=False)

    @property
    def classification(self) -> str:
        return f"{self.grupo}/{self.subgrupo}"

    @property
    def escopo(self) -> str:
        premissas = self.details.get("premissas")
        if isinstance(premissas, dict):
            escopo = premissas.get("escopo")  # pyright: ignore[reportUnknownMemberType]
            if isinstance(escopo, str):
                return escopo
        return ""

    def code_sequence(self) -> int:
        """Numeric suffix of ``GRUPO-SUBGRUPO-NN`` codes, 0 when absent."""
        tail = self.codigo.rsplit("-", 1)[-1] if self.codigo else ""
        return int(tail) if tail.isdigit() else 0
