"""Sequential review of imported batches: queue, staging and commit."""

from __future__ import annotations

from .commit import CommitResult, Rejection, commit_staged
from .factories import (
    ComposicaoFactory,
    InsumoFactory,
    RecordFactory,
    factory_for,
    next_composition_code,
)
from .queue import PendingReview, ReviewQueue, ReviewState
from .session import NOTHING_TO_IMPORT, ImportSession
from .staging import EDITABLE_FIELDS, StagedItem, StagingCollection

__all__ = [
    "EDITABLE_FIELDS",
    "NOTHING_TO_IMPORT",
    "CommitResult",
    "ComposicaoFactory",
    "ImportSession",
    "InsumoFactory",
    "PendingReview",
    "RecordFactory",
    "Rejection",
    "ReviewQueue",
    "ReviewState",
    "StagedItem",
    "StagingCollection",
    "commit_staged",
    "factory_for",
    "next_composition_code",
]
