"""Ports for the backing store."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from hquant.domain.model import Composicao, Insumo, Project


@runtime_checkable
class Repository[TEntity](Protocol):
    """Independent per-record calls; there is no batch or transactional API."""

    async def fetch_all(self) -> list[TEntity]: ...

    async def create(self, entity: TEntity) -> TEntity:
        """Store ``entity`` (insert or replace by id) and return the stored version."""
        ...

    async def delete(self, entity_id: str) -> None: ...


@runtime_checkable
class InsumoRepository(Repository[Insumo], Protocol):
    """Persistence contract for insumos."""


@runtime_checkable
class ComposicaoRepository(Repository[Composicao], Protocol):
    """Persistence contract for compositions."""


@runtime_checkable
class ProjectRepository(Repository[Project], Protocol):
    """Persistence contract for kanban projects."""
