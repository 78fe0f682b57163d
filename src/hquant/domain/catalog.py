"""In-session catalog store: the single owner of canonical records."""

from __future__ import annotations

from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

from hquant.domain.errors import RecordNotFoundError
from hquant.domain.model import CatalogRecord, Composicao, Insumo, RecordKind
from hquant.domain.review.commit import CommitResult, commit_staged

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

    from hquant.domain.model import PriceEntry
    from hquant.domain.review.factories import RecordFactory
    from hquant.domain.review.staging import StagedItem

log = getLogger(__name__)


class Catalog[TRecord: CatalogRecord]:
    """Canonical records of one kind for the duration of a session.

    Views and the review workflow only read from it; records change through
    :meth:`commit` (the commit step) and :meth:`remove` (explicit deletion).
    """

    def __init__(self, factory: RecordFactory[TRecord], records: Iterable[TRecord] = ()) -> None:
        self._factory = factory
        self._records: dict[str, TRecord] = {record.id: record for record in records}

    @property
    def kind(self) -> RecordKind:
        return self._factory.kind

    @property
    def factory(self) -> RecordFactory[TRecord]:
        return self._factory

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    @property
    def records(self) -> tuple[TRecord, ...]:
        return tuple(self._records.values())

    def snapshot(self) -> Mapping[str, TRecord]:
        """Read-only copy, detached from later mutations."""
        return MappingProxyType(dict(self._records))

    def get(self, record_id: str) -> TRecord:
        try:
            return self._records[record_id]
        except KeyError:
            raise RecordNotFoundError(f"No {self.kind} with id {record_id}") from None

    def history(self, record_id: str) -> tuple[PriceEntry, ...]:
        return self.get(record_id).history

    def search(self, query: str) -> list[TRecord]:
        matches = [record for record in self._records.values() if record.matches(query)]
        return sorted(matches, key=lambda record: record.name.casefold())

    def load(self, records: Iterable[TRecord]) -> None:
        """Replace the session contents with what the backing store returned."""
        self._records = {record.id: record for record in records}
        log.info("Loaded %s %s record(s)", len(self._records), self.kind)

    def commit(
        self,
        staged: Iterable[StagedItem],
        *,
        now: datetime | None = None,
    ) -> CommitResult[TRecord]:
        merged, result = commit_staged(self._records, staged, factory=self._factory, now=now)
        self._records = merged
        log.info("Committed %s batch: %s", self.kind, result.summary())
        return result

    def remove(self, record_id: str) -> TRecord:
        record = self.get(record_id)
        del self._records[record_id]
        return record


type InsumoCatalog = Catalog[Insumo]
type ComposicaoCatalog = Catalog[Composicao]
