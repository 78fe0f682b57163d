"""Public interface for the Supabase adapter."""

from __future__ import annotations

from .repository import SupabaseComposicaoRepository, SupabaseInsumoRepository
from .translator import composicao_from_row, composicao_to_row, insumo_from_row, insumo_to_row

__all__ = [
    "SupabaseComposicaoRepository",
    "SupabaseInsumoRepository",
    "composicao_from_row",
    "composicao_to_row",
    "insumo_from_row",
    "insumo_to_row",
]
