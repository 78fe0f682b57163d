"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from logging import getLogger
from typing import TYPE_CHECKING

from hquant.adapters.gemini import (
    GeminiClient,
    GeminiCompositionExtractor,
    GeminiCompositionMatcher,
    GeminiInsumoExtractor,
    GeminiInsumoMatcher,
    GeminiReviser,
)
from hquant.adapters.sqlalchemy import (
    SqlAlchemyComposicaoRepository,
    SqlAlchemyInsumoRepository,
    SqlAlchemyProjectRepository,
)
from hquant.adapters.sqlalchemy.unit_of_work import is_started, startup
from hquant.adapters.supabase import SupabaseComposicaoRepository, SupabaseInsumoRepository
from hquant.config import get_review_config, supabase_configured
from hquant.domain.catalog import Catalog
from hquant.domain.errors import AdapterError, MalformedResponseError, PersistenceError
from hquant.domain.model import CatalogRecord, KanbanStatus, Priority, Project, RecordKind
from hquant.domain.projects import ProjectBoard, run_status_monitor
from hquant.domain.review import ImportSession, factory_for

if TYPE_CHECKING:
    import asyncio
    from datetime import datetime

    from hquant.domain.ports import (
        BatchMatcher,
        CandidateExtractor,
        CandidateReviser,
        ProjectRepository,
        Repository,
    )
    from hquant.domain.review import CommitResult

log = getLogger(__name__)


# backing store ----------------------------------------------------------------


def _ensure_local_store() -> None:
    if not is_started():
        startup()


def build_repository(kind: RecordKind) -> Repository[CatalogRecord]:
    """Hosted store when Supabase is configured, local SQLite otherwise."""

    if supabase_configured():
        log.debug("Using the Supabase store for %s records", kind)
        if kind is RecordKind.INSUMO:
            return SupabaseInsumoRepository()  # type: ignore[return-value]
        return SupabaseComposicaoRepository()  # type: ignore[return-value]
    _ensure_local_store()
    if kind is RecordKind.INSUMO:
        return SqlAlchemyInsumoRepository()  # type: ignore[return-value]
    return SqlAlchemyComposicaoRepository()  # type: ignore[return-value]


def build_project_repository() -> ProjectRepository:
    _ensure_local_store()
    return SqlAlchemyProjectRepository()


# catalog ----------------------------------------------------------------------


async def load_catalog(
    kind: RecordKind,
    *,
    repository: Repository[CatalogRecord] | None = None,
) -> Catalog[CatalogRecord]:
    store = repository or build_repository(kind)
    catalog: Catalog[CatalogRecord] = Catalog(factory_for(kind))  # type: ignore[arg-type]
    catalog.load(await store.fetch_all())
    return catalog


def build_import_session(
    catalog: Catalog[CatalogRecord],
    *,
    extractor: CandidateExtractor | None = None,
    matcher: BatchMatcher | None = None,
    reviser: CandidateReviser | None = None,
    min_score: int | None = None,
) -> ImportSession[CatalogRecord]:
    """Wire the Gemini collaborators for ``catalog.kind`` unless others are given."""

    if extractor is None or matcher is None or reviser is None:
        client = GeminiClient()
        if catalog.kind is RecordKind.INSUMO:
            extractor = extractor or GeminiInsumoExtractor(client)
            matcher = matcher or GeminiInsumoMatcher(client)
        else:
            extractor = extractor or GeminiCompositionExtractor(client)
            matcher = matcher or GeminiCompositionMatcher(client)
        reviser = reviser or GeminiReviser(catalog.kind, client)
    threshold = get_review_config().match_min_score if min_score is None else min_score
    return ImportSession(
        catalog,
        extractor=extractor,
        matcher=matcher,
        reviser=reviser,
        min_score=threshold,
    )


@dataclass(slots=True)
class PersistReport:
    """Outcome of mirroring one commit to the backing store, record by record."""

    stored: list[str] = field(default_factory=list[str])
    failed: list[tuple[str, str]] = field(default_factory=list[tuple[str, str]])

    @property
    def ok(self) -> bool:
        return not self.failed


async def persist_commit(
    result: CommitResult[CatalogRecord],
    repository: Repository[CatalogRecord],
) -> PersistReport:
    """Write every added or updated record; failures are reported, never rolled back."""

    report = PersistReport()
    for record in result.changed:
        try:
            await repository.create(record)
        except (AdapterError, MalformedResponseError, PersistenceError) as exc:
            log.error("Could not store %s %s (%s): %s", record.kind, record.id, record.name, exc)
            report.failed.append((record.id, str(exc)))
            continue
        report.stored.append(record.id)
    if report.failed:
        log.warning(
            "%s of %s record(s) were not stored", len(report.failed), len(result.changed)
        )
    return report


async def delete_record(
    catalog: Catalog[CatalogRecord],
    record_id: str,
    *,
    repository: Repository[CatalogRecord],
) -> CatalogRecord:
    """Delete from the backing store first; the session copy goes only when that succeeds."""

    record = catalog.get(record_id)
    await repository.delete(record.id)
    catalog.remove(record.id)
    log.info("Deleted %s %s (%s)", record.kind, record.id, record.name)
    return record


# projects ---------------------------------------------------------------------


async def load_board(*, repository: ProjectRepository | None = None) -> ProjectBoard:
    store = repository or build_project_repository()
    return ProjectBoard(await store.fetch_all())


async def create_project(
    board: ProjectBoard,
    *,
    repository: ProjectRepository,
    nome: str,
    cliente: str,
    data_entrada: date | None = None,
    data_limite: date | None = None,
    prioridade: Priority = Priority.MEDIUM,
    resumo_tecnico: str = "",
) -> Project:
    if not nome.strip() or not cliente.strip():
        raise ValueError("Project name and client are required")
    project = Project(
        nome=nome.strip(),
        cliente=cliente.strip(),
        data_entrada=data_entrada or date.today(),
        data_limite=data_limite,
        prioridade=prioridade,
        resumo_tecnico=resumo_tecnico,
    )
    await repository.create(project)
    return board.add(project)


async def move_project(
    board: ProjectBoard,
    project_id: str,
    status: KanbanStatus,
    *,
    repository: ProjectRepository,
    now: datetime | None = None,
) -> Project:
    project = board.move(project_id, status, now=now)
    await repository.create(project)
    return project


async def _store_projects(repository: ProjectRepository, projects: list[Project]) -> None:
    for project in projects:
        try:
            await repository.create(project)
        except PersistenceError as exc:
            log.error("Could not store project %s: %s", project.id, exc)


async def tick_board(
    board: ProjectBoard,
    *,
    repository: ProjectRepository,
    now: datetime | None = None,
) -> list[Project]:
    moved = board.tick(now)
    await _store_projects(repository, moved)
    return moved


async def monitor_board(
    board: ProjectBoard,
    *,
    repository: ProjectRepository,
    stop: asyncio.Event,
    interval: float | None = None,
) -> int:
    async def store(moved: list[Project]) -> None:
        await _store_projects(repository, moved)

    if interval is None:
        return await run_status_monitor(board, stop=stop, on_moved=store)
    return await run_status_monitor(board, stop=stop, interval=interval, on_moved=store)
