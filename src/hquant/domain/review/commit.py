"""Commit step: apply staged decisions onto a copy of the canonical catalog."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING

from hquant.domain.model import CatalogRecord, utcnow

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

    from .factories import RecordFactory
    from .staging import StagedItem

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Rejection:
    candidate_id: str
    name: str | None
    reason: str


@dataclass(slots=True)
class CommitResult[TRecord: CatalogRecord]:
    """Outcome of one commit; ``added`` and ``updated`` are the records to mirror."""

    added: list[TRecord] = field(default_factory=list["TRecord"])
    updated: list[TRecord] = field(default_factory=list["TRecord"])
    dropped: list[str] = field(default_factory=list[str])
    rejected: list[Rejection] = field(default_factory=list[Rejection])

    @property
    def changed(self) -> list[TRecord]:
        return [*self.added, *self.updated]

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.updated or self.dropped or self.rejected)

    def summary(self) -> str:
        message = f"{len(self.added)} record(s) added, {len(self.updated)} record(s) updated"
        if self.dropped:
            message += f", {len(self.dropped)} update(s) dropped (target no longer exists)"
        if self.rejected:
            message += f", {len(self.rejected)} record(s) rejected"
        return message


def _detached[TRecord: CatalogRecord](record: TRecord) -> TRecord:
    # fresh history list so the caller's catalog is untouched until it swaps in the result
    return replace(record, _history=list(record.history))


def commit_staged[TRecord: CatalogRecord](
    records: Mapping[str, TRecord],
    staged: Iterable[StagedItem],
    *,
    factory: RecordFactory[TRecord],
    now: datetime | None = None,
) -> tuple[dict[str, TRecord], CommitResult[TRecord]]:
    """Return the merged catalog and a summary, without mutating ``records``.

    ``new`` drafts become records with a single history entry; ``update``
    decisions append one entry to their target. Updates whose target vanished
    are dropped; drafts failing validation are rejected. Both are reported.
    """

    at = now or utcnow()
    merged: dict[str, TRecord] = dict(records)
    result: CommitResult[TRecord] = CommitResult()
    touched: set[str] = set()

    for item in staged:
        decision = item.decision
        draft = item.draft
        reason = factory.validate(draft, for_update=decision.is_update)
        if reason is not None:
            log.warning("Rejected staged candidate %s (%s): %s", draft.id, draft.name, reason)
            result.rejected.append(Rejection(candidate_id=draft.id, name=draft.name, reason=reason))
            continue

        if not decision.is_update:
            record = factory.build(draft, at=at, existing=merged)
            merged[record.id] = record
            result.added.append(record)
            continue

        target_id = decision.target_id or ""
        if target_id not in merged:
            log.warning("Dropping update of %s: target %s no longer exists", draft.id, target_id)
            result.dropped.append(draft.id)
            continue

        if target_id not in touched:
            merged[target_id] = _detached(merged[target_id])
            touched.add(target_id)
        target = merged[target_id]
        factory.apply_update(target, draft, at=at)
        if target not in result.updated:
            result.updated.append(target)

    return merged, result
