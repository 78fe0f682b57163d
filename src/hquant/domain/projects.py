"""Kanban board of quoting projects and its periodic status re-check."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from hquant.config.review import (
    SENT_TO_WAITING_DAYS,
    STATUS_CHECK_INTERVAL_SECONDS,
    WAITING_OVERDUE_DAYS,
)
from hquant.domain.errors import RecordNotFoundError
from hquant.domain.model import KANBAN_COLUMNS, KanbanStatus

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from hquant.domain.model import Project

log = getLogger(__name__)


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ProjectBoard:
    """In-session owner of the project list.

    ``tick`` is the only automatic transition: projects left in *Sent* for
    ``sent_to_waiting`` move to *Waiting*.
    """

    def __init__(
        self,
        projects: Iterable[Project] = (),
        *,
        sent_to_waiting: timedelta = timedelta(days=SENT_TO_WAITING_DAYS),
        waiting_overdue: timedelta = timedelta(days=WAITING_OVERDUE_DAYS),
    ) -> None:
        self._projects: dict[str, Project] = {project.id: project for project in projects}
        self.sent_to_waiting = sent_to_waiting
        self.waiting_overdue = waiting_overdue

    def __len__(self) -> int:
        return len(self._projects)

    @property
    def projects(self) -> tuple[Project, ...]:
        return tuple(self._projects.values())

    def load(self, projects: Iterable[Project]) -> None:
        self._projects = {project.id: project for project in projects}

    def add(self, project: Project) -> Project:
        self._projects[project.id] = project
        return project

    def get(self, project_id: str) -> Project:
        try:
            return self._projects[project_id]
        except KeyError:
            raise RecordNotFoundError(f"No project with id {project_id}") from None

    def remove(self, project_id: str) -> Project:
        project = self.get(project_id)
        del self._projects[project_id]
        return project

    def move(
        self,
        project_id: str,
        status: KanbanStatus,
        *,
        now: datetime | None = None,
    ) -> Project:
        project = self.get(project_id)
        project.move_to(status, now=now or _utcnow())
        log.info("Project %s moved to %s", project.nome, status)
        return project

    def by_status(self) -> dict[KanbanStatus, list[Project]]:
        columns: dict[KanbanStatus, list[Project]] = {status: [] for status in KANBAN_COLUMNS}
        for project in self._projects.values():
            columns[project.status].append(project)
        return columns

    def tick(self, now: datetime | None = None) -> list[Project]:
        """Move stale *Sent* projects to *Waiting*; return the ones moved."""

        current = now or _utcnow()
        threshold = self.sent_to_waiting / timedelta(days=1)
        moved: list[Project] = []
        for project in self._projects.values():
            if project.status is not KanbanStatus.SENT:
                continue
            elapsed = project.days_since_sent(current)
            if elapsed is not None and elapsed >= threshold:
                project.status = KanbanStatus.WAITING
                moved.append(project)
        if moved:
            log.info("Moved %s project(s) from sent to waiting", len(moved))
        return moved

    def overdue(self, now: datetime | None = None) -> list[Project]:
        current = now or _utcnow()
        threshold = self.waiting_overdue / timedelta(days=1)
        return [
            project
            for project in self._projects.values()
            if project.status is KanbanStatus.WAITING
            and (elapsed := project.days_since_sent(current)) is not None
            and elapsed >= threshold
        ]


async def run_status_monitor(
    board: ProjectBoard,
    *,
    stop: asyncio.Event,
    interval: float = STATUS_CHECK_INTERVAL_SECONDS,
    clock: Clock = _utcnow,
    on_moved: Callable[[list[Project]], Awaitable[None]] | None = None,
) -> int:
    """Re-check the board every ``interval`` seconds until ``stop`` is set.

    Returns the number of checks performed. The first check runs immediately.
    """

    checks = 0
    while not stop.is_set():
        moved = board.tick(clock())
        checks += 1
        if moved and on_moved is not None:
            await on_moved(moved)
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except TimeoutError:
            continue
    log.debug("Status monitor stopped after %s check(s)", checks)
    return checks
