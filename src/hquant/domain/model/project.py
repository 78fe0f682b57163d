"""Quoting projects tracked on the kanban board."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from hquant.domain.model.entity import Entity
from hquant.domain.model.enums import KanbanStatus, Priority


@dataclass(eq=False, kw_only=True)
class Project(Entity):
    nome: str
    cliente: str
    data_entrada: date
    data_limite: date | None = None
    prioridade: Priority = Priority.MEDIUM
    status: KanbanStatus = KanbanStatus.BACKLOG
    resumo_tecnico: str = ""
    data_envio: datetime | None = None

    def move_to(self, status: KanbanStatus, *, now: datetime) -> None:
        """Move to another column; entering *Sent* (again) restarts the sent clock."""
        if status is KanbanStatus.SENT:
            self.data_envio = now
        self.status = status

    def days_since_sent(self, now: datetime) -> float | None:
        if self.data_envio is None:
            return None
        return (now - self.data_envio) / timedelta(days=1)
