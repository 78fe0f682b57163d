"""SQLAlchemy adapter package for H-Quant."""

from __future__ import annotations

from .mappings import create_all_tables, metadata
from .repositories import (
    SqlAlchemyComposicaoRepository,
    SqlAlchemyInsumoRepository,
    SqlAlchemyProjectRepository,
)
from .unit_of_work import StartupError, shutdown, startup

__all__ = [
    "SqlAlchemyComposicaoRepository",
    "SqlAlchemyInsumoRepository",
    "SqlAlchemyProjectRepository",
    "StartupError",
    "create_all_tables",
    "metadata",
    "shutdown",
    "startup",
]
