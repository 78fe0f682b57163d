"""SQLAlchemy table metadata for the local backing store."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
)

from hquant.domain.model import InsumoTipo, KanbanStatus, Priority, RecordKind

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

metadata = MetaData()


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _enum(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        length=64,
        values_callable=lambda members: [member.value for member in members],
    )


insumo_table = Table(
    "insumo",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("nome", String(512), nullable=False),
    Column("unidade", String(32), nullable=False),
    Column("tipo", _enum(InsumoTipo), nullable=False),
    Column("marca", String(255)),
    Column("observacao", Text),
)

composicao_table = Table(
    "composicao",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("codigo", String(128), nullable=False),
    Column("titulo", String(512), nullable=False),
    Column("unidade", String(32), nullable=False),
    Column("quantidade_referencia", Float),
    Column("grupo", String(128), nullable=False),
    Column("subgrupo", String(128), nullable=False),
    Column("observacao", Text),
    Column("details", JSON, nullable=False, default=dict),
)

# append-only: rows are only ever inserted for a record, in order
price_entry_table = Table(
    "price_entry",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("record_kind", _enum(RecordKind), nullable=False),
    Column("record_id", String(64), nullable=False),
    Column("position", Integer, nullable=False),
    Column("at", UTCDateTime(), nullable=False),
    Column("value", Float, nullable=False),
    UniqueConstraint("record_kind", "record_id", "position", name="uq_price_entry_position"),
    Index("ix_price_entry_record", "record_kind", "record_id"),
)

project_table = Table(
    "project",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("nome", String(512), nullable=False),
    Column("cliente", String(512), nullable=False),
    Column("data_entrada", Date, nullable=False),
    Column("data_limite", Date),
    Column("prioridade", _enum(Priority), nullable=False),
    Column("status", _enum(KanbanStatus), nullable=False),
    Column("resumo_tecnico", Text, nullable=False, default=""),
    Column("data_envio", UTCDateTime()),
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    metadata.create_all(engine)
