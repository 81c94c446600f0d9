"""Domain models for the retrieval core.

Defines the immutable records flowing through the pipeline:
- Document: a normalized catalog entry with a stable id.
- EmbeddedDocument: a Document together with its embedding vector.
- RankedResult: a Document scored against a query, produced per request.
"""
from dataclasses import dataclass
from typing import Sequence, Tuple

Vector = Sequence[float]


@dataclass(frozen=True)
class Document:
    """Uniform document projected from a source catalog entry.

    Attributes:
        id: Deterministic id, "<prefix>_<slugified-name>".
        title: Display title.
        snippet: Natural-language summary of the entry's fields.
    """
    id: str
    title: str
    snippet: str

    @property
    def text(self) -> str:
        """Text sent to the embedding and chat capabilities."""
        return f"{self.title}. {self.snippet}"


@dataclass(frozen=True)
class EmbeddedDocument:
    """A Document paired with its embedding; immutable once built."""
    document: Document
    embedding: Tuple[float, ...]

    @property
    def id(self) -> str:
        return self.document.id


@dataclass(frozen=True)
class RankedResult:
    document: Document
    score: float
