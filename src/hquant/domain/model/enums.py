"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class RecordKind(StrEnum):
    INSUMO = "insumo"
    COMPOSICAO = "composicao"


class InsumoTipo(StrEnum):
    MATERIAL = "Material"
    MAO_OBRA = "MaoObra"
    EQUIPAMENTO = "Equipamento"

    @classmethod
    def parse(cls, value: str | None) -> InsumoTipo:
        """Lenient lookup used for parser output and user edits."""
        if not value:
            return cls.MATERIAL
        folded = value.strip().casefold().replace(" ", "").replace("ã", "a").replace("-", "")
        for member in cls:
            if member.value.casefold() == folded:
                return member
        if folded.startswith("equip"):
            return cls.EQUIPAMENTO
        if folded.startswith("mao"):
            return cls.MAO_OBRA
        return cls.MATERIAL


class DecisionKind(StrEnum):
    NEW = "new"
    UPDATE = "update"


class Priority(StrEnum):
    HIGH = "Alta"
    MEDIUM = "Média"
    LOW = "Baixa"


class KanbanStatus(StrEnum):
    BACKLOG = "Backlog / Caixa de Entrada"
    IN_PROGRESS = "Em Orçamentação"
    READY_TO_SEND = "Pronto para Envio"
    SENT = "Enviado (Recente)"
    WAITING = "Aguardando Retorno"
    APPROVED = "Aprovado"
    DECLINED = "Declinado"
    ARCHIVED = "Arquivo Morto"


KANBAN_COLUMNS: tuple[KanbanStatus, ...] = tuple(KanbanStatus)
