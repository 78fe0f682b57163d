"""Ports for the external record extraction and revision calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from hquant.domain.model import CandidateRecord


@dataclass(frozen=True, slots=True)
class ImageInput:
    """Optional picture (price list photo, spreadsheet screenshot) sent with the text."""

    data: bytes
    mime_type: str


@runtime_checkable
class CandidateExtractor(Protocol):
    """Turn loosely structured text into candidate records with temporary ids.

    Unrecognisable input does not raise: a nameless record whose annotation
    starts with ``Alerta:`` is returned instead.
    """

    async def __call__(
        self,
        raw_text: str,
        *,
        image: ImageInput | None = None,
    ) -> list[CandidateRecord]: ...


@runtime_checkable
class CandidateReviser(Protocol):
    """Re-interpret one staged record following a correction instruction."""

    async def __call__(self, candidate: CandidateRecord, instruction: str) -> CandidateRecord: ...


__all__ = ["CandidateExtractor", "CandidateReviser", "ImageInput"]
