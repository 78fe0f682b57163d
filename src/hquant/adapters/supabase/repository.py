"""Hosted backing store over the Supabase PostgREST interface."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, ClassVar, cast

import httpx

from hquant.adapters.http_resilience import ResilientClient, default_client_factory
from hquant.config.supabase import SupabaseConfig, get_supabase_config
from hquant.domain.errors import AdapterError, MalformedResponseError, PersistenceError
from hquant.domain.model import CatalogRecord, Composicao, Insumo
from hquant.domain.ports import ComposicaoRepository, InsumoRepository

from .translator import composicao_from_row, composicao_to_row, insumo_from_row, insumo_to_row

if TYPE_CHECKING:
    from hquant.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

_UPSERT_PREFER = "return=representation,resolution=merge-duplicates"


@dataclass(slots=True)
class _SupabaseTable[TRecord: CatalogRecord]:
    """Independent per-record calls against one table; no batching, no transactions."""

    table: ClassVar[str]
    order_column: ClassVar[str]

    config: SupabaseConfig = field(default_factory=get_supabase_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=default_client_factory
    )

    def _from_row(self, row: object) -> TRecord:
        raise NotImplementedError

    def _to_row(self, record: TRecord) -> dict[str, object]:
        raise NotImplementedError

    async def fetch_all(self) -> list[TRecord]:
        params = {"select": "*", "order": f"{self.order_column}.asc"}
        response = await self._call("GET", "fetch_all", params=params)
        rows = _json_list(response, operation="fetch_all")
        records = [self._from_row(row) for row in rows]
        log.info("Fetched %s row(s) from %s", len(records), self.table)
        return records

    async def create(self, entity: TRecord) -> TRecord:
        response = await self._call(
            "POST",
            "create",
            json=self._to_row(entity),
            headers={"Prefer": _UPSERT_PREFER},
        )
        rows = _json_list(response, operation="create")
        if not rows:
            return entity
        return self._from_row(rows[0])

    async def delete(self, entity_id: str) -> None:
        await self._call("DELETE", "delete", params={"id": f"eq.{entity_id}"})

    async def _call(
        self,
        method: str,
        operation: str,
        *,
        params: dict[str, str] | None = None,
        json: object = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            async with self.client_factory(self.config.resilience) as client:
                response = await client.request(
                    method, self.table, params=params, json=json, headers=headers
                )
        except httpx.HTTPError as exc:
            log.error("Supabase %s on %s failed: %s", operation, self.table, exc)
            raise AdapterError(f"Supabase request failed: {exc}", operation=operation) from exc

        if response.is_error:
            log.error(
                "Supabase %s on %s returned %s: %s",
                operation,
                self.table,
                response.status_code,
                response.text,
            )
            raise PersistenceError(
                f"Supabase {operation} on {self.table} returned {response.status_code}"
            )
        return response


def _json_list(response: httpx.Response, *, operation: str) -> list[object]:
    if not response.content:
        return []
    try:
        payload = response.json()
    except ValueError as exc:
        raise MalformedResponseError(
            "Supabase answer is not JSON", operation=operation, raw=response.text
        ) from exc
    if isinstance(payload, dict):
        return [payload]
    if not isinstance(payload, list):
        raise MalformedResponseError(
            "Supabase answer is not a row list", operation=operation, raw=response.text
        )
    return cast(list[object], payload)


@dataclass(slots=True)
class SupabaseInsumoRepository(_SupabaseTable[Insumo]):
    table: ClassVar[str] = "insumos"
    order_column: ClassVar[str] = "nome"

    def _from_row(self, row: object) -> Insumo:
        return insumo_from_row(row)

    def _to_row(self, record: Insumo) -> dict[str, object]:
        return insumo_to_row(record)


@dataclass(slots=True)
class SupabaseComposicaoRepository(_SupabaseTable[Composicao]):
    table: ClassVar[str] = "composicoes"
    order_column: ClassVar[str] = "titulo"

    def _from_row(self, row: object) -> Composicao:
        return composicao_from_row(row)

    def _to_row(self, record: Composicao) -> dict[str, object]:
        return composicao_to_row(record)


if TYPE_CHECKING:
    _insumo_repository_check: InsumoRepository = SupabaseInsumoRepository()
    _composicao_repository_check: ComposicaoRepository = SupabaseComposicaoRepository()
