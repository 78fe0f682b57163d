"""Domain port definitions for adapters."""

from __future__ import annotations

from .extraction import CandidateExtractor, CandidateReviser, ImageInput
from .matching import BatchMatcher
from .persistence import ComposicaoRepository, InsumoRepository, ProjectRepository, Repository

__all__ = [
    "BatchMatcher",
    "CandidateExtractor",
    "CandidateReviser",
    "ComposicaoRepository",
    "ImageInput",
    "InsumoRepository",
    "ProjectRepository",
    "Repository",
]
