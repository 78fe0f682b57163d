"""Public domain model surface."""

from __future__ import annotations

from hquant.domain.model.catalog import (
    DEFAULT_GROUP,
    DEFAULT_UNIT,
    CatalogRecord,
    Composicao,
    Insumo,
    PriceEntry,
    utcnow,
)
from hquant.domain.model.drafts import (
    CandidateRecord,
    MatchResult,
    ReviewDecision,
    assign_temp_ids,
    best_matches,
    temp_id,
)
from hquant.domain.model.entity import Entity, new_id
from hquant.domain.model.enums import (
    KANBAN_COLUMNS,
    DecisionKind,
    InsumoTipo,
    KanbanStatus,
    Priority,
    RecordKind,
)
from hquant.domain.model.project import Project

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "new_id",
    "utcnow",
    # enums
    "DecisionKind",
    "InsumoTipo",
    "KANBAN_COLUMNS",
    "KanbanStatus",
    "Priority",
    "RecordKind",
    # catalog
    "CatalogRecord",
    "Composicao",
    "DEFAULT_GROUP",
    "DEFAULT_UNIT",
    "Insumo",
    "PriceEntry",
    # drafts
    "CandidateRecord",
    "MatchResult",
    "ReviewDecision",
    "assign_temp_ids",
    "best_matches",
    "temp_id",
    # projects
    "Project",
]
