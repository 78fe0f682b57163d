"""Repository implementations backed by SQLAlchemy Core."""

from __future__ import annotations

from collections import defaultdict
from logging import getLogger
from typing import TYPE_CHECKING, Any, ClassVar

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import SQLAlchemyError

from hquant.domain.errors import PersistenceError
from hquant.domain.model import (
    CatalogRecord,
    Composicao,
    Insumo,
    PriceEntry,
    Project,
    RecordKind,
)
from hquant.domain.ports import ComposicaoRepository, InsumoRepository, ProjectRepository

from .mappings import composicao_table, insumo_table, price_entry_table, project_table
from .unit_of_work import transaction

if TYPE_CHECKING:
    from sqlalchemy import Table
    from sqlalchemy.engine import Connection, Engine, RowMapping

log = getLogger(__name__)


class _CatalogRepository[TRecord: CatalogRecord]:
    kind: ClassVar[RecordKind]
    table: ClassVar[Table]
    order_column: ClassVar[str]

    def __init__(self, engine: Engine | None = None) -> None:
        self.engine = engine

    def _from_row(self, row: RowMapping, history: list[PriceEntry]) -> TRecord:
        raise NotImplementedError

    def _to_row(self, record: TRecord) -> dict[str, Any]:
        raise NotImplementedError

    async def fetch_all(self) -> list[TRecord]:
        try:
            with transaction(self.engine) as connection:
                rows = connection.execute(
                    select(self.table).order_by(self.table.c[self.order_column])
                ).mappings().all()
                histories = self._histories(connection)
                return [self._from_row(row, histories[row["id"]]) for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not load {self.kind} records: {exc}") from exc

    async def create(self, entity: TRecord) -> TRecord:
        """Insert or replace the row; only history entries not stored yet are added."""
        try:
            with transaction(self.engine) as connection:
                connection.execute(delete(self.table).where(self.table.c.id == entity.id))
                connection.execute(insert(self.table).values(**self._to_row(entity)))
                stored = self._stored_entries(connection, entity.id)
                new_entries = entity.history[stored:]
                if new_entries:
                    connection.execute(
                        insert(price_entry_table),
                        [
                            {
                                "record_kind": self.kind,
                                "record_id": entity.id,
                                "position": stored + offset,
                                "at": entry.at,
                                "value": entry.value,
                            }
                            for offset, entry in enumerate(new_entries)
                        ],
                    )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not store {self.kind} {entity.id}: {exc}") from exc
        log.debug("Stored %s %s (%s new price entries)", self.kind, entity.id, len(new_entries))
        return entity

    async def delete(self, entity_id: str) -> None:
        try:
            with transaction(self.engine) as connection:
                connection.execute(delete(self.table).where(self.table.c.id == entity_id))
                connection.execute(
                    delete(price_entry_table)
                    .where(price_entry_table.c.record_kind == self.kind)
                    .where(price_entry_table.c.record_id == entity_id)
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not delete {self.kind} {entity_id}: {exc}") from exc

    def _histories(self, connection: Connection) -> defaultdict[str, list[PriceEntry]]:
        rows = connection.execute(
            select(price_entry_table)
            .where(price_entry_table.c.record_kind == self.kind)
            .order_by(price_entry_table.c.record_id, price_entry_table.c.position)
        ).mappings()
        histories: defaultdict[str, list[PriceEntry]] = defaultdict(list)
        for row in rows:
            histories[row["record_id"]].append(PriceEntry(at=row["at"], value=row["value"]))
        return histories

    def _stored_entries(self, connection: Connection, record_id: str) -> int:
        count = connection.execute(
            select(func.count())
            .select_from(price_entry_table)
            .where(price_entry_table.c.record_kind == self.kind)
            .where(price_entry_table.c.record_id == record_id)
        ).scalar_one()
        return int(count)


class SqlAlchemyInsumoRepository(_CatalogRepository[Insumo]):
    kind = RecordKind.INSUMO
    table = insumo_table
    order_column = "nome"

    def _from_row(self, row: RowMapping, history: list[PriceEntry]) -> Insumo:
        return Insumo.restore(
            history=history,
            id=row["id"],
            name=row["nome"],
            unit=row["unidade"],
            tipo=row["tipo"],
            brand=row["marca"],
            annotation=row["observacao"],
        )

    def _to_row(self, record: Insumo) -> dict[str, Any]:
        return {
            "id": record.id,
            "nome": record.name,
            "unidade": record.unit,
            "tipo": record.tipo,
            "marca": record.brand,
            "observacao": record.annotation,
        }


class SqlAlchemyComposicaoRepository(_CatalogRepository[Composicao]):
    kind = RecordKind.COMPOSICAO
    table = composicao_table
    order_column = "titulo"

    def _from_row(self, row: RowMapping, history: list[PriceEntry]) -> Composicao:
        return Composicao.restore(
            history=history,
            id=row["id"],
            name=row["titulo"],
            unit=row["unidade"],
            annotation=row["observacao"],
            codigo=row["codigo"],
            grupo=row["grupo"],
            subgrupo=row["subgrupo"],
            quantidade_referencia=row["quantidade_referencia"],
            details=dict(row["details"] or {}),
        )

    def _to_row(self, record: Composicao) -> dict[str, Any]:
        return {
            "id": record.id,
            "codigo": record.codigo,
            "titulo": record.name,
            "unidade": record.unit,
            "quantidade_referencia": record.quantidade_referencia,
            "grupo": record.grupo,
            "subgrupo": record.subgrupo,
            "observacao": record.annotation,
            "details": record.details,
        }


class SqlAlchemyProjectRepository:
    def __init__(self, engine: Engine | None = None) -> None:
        self.engine = engine

    async def fetch_all(self) -> list[Project]:
        try:
            with transaction(self.engine) as connection:
                rows = connection.execute(
                    select(project_table).order_by(project_table.c.data_entrada)
                ).mappings().all()
                return [Project(**dict(row)) for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not load projects: {exc}") from exc

    async def create(self, entity: Project) -> Project:
        values = {
            "id": entity.id,
            "nome": entity.nome,
            "cliente": entity.cliente,
            "data_entrada": entity.data_entrada,
            "data_limite": entity.data_limite,
            "prioridade": entity.prioridade,
            "status": entity.status,
            "resumo_tecnico": entity.resumo_tecnico,
            "data_envio": entity.data_envio,
        }
        try:
            with transaction(self.engine) as connection:
                connection.execute(delete(project_table).where(project_table.c.id == entity.id))
                connection.execute(insert(project_table).values(**values))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not store project {entity.id}: {exc}") from exc
        return entity

    async def delete(self, entity_id: str) -> None:
        try:
            with transaction(self.engine) as connection:
                connection.execute(delete(project_table).where(project_table.c.id == entity_id))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not delete project {entity_id}: {exc}") from exc


if TYPE_CHECKING:
    _insumo_repository_check: InsumoRepository = SqlAlchemyInsumoRepository()
    _composicao_repository_check: ComposicaoRepository = SqlAlchemyComposicaoRepository()
    _project_repository_check: ProjectRepository = SqlAlchemyProjectRepository()
