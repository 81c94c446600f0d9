"""Persistent embedding cache backed by a single JSON file.

Provides:
- EmbeddingCacheStore: load()/save() of the whole corpus (ids, titles, snippets, embeddings).
- load returns None when the file is missing, unreadable, malformed or empty. That is the
  cold-start signal, not an error.
- save writes to a temporary file in the same directory, fsyncs it and renames it over the
  target, so a crash mid-write never leaves a truncated cache behind.

The cache is never invalidated automatically. Delete the file (or build with --force) when
the source catalogs change.
"""
import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

from codeguide.models import Document, EmbeddedDocument

logger = logging.getLogger(__name__)


class EmbeddingCacheStore:
    """Single-artifact store for the embedded corpus."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[Tuple[EmbeddedDocument, ...]]:
        """Reload the cached corpus.

        Returns:
            Optional[Tuple[EmbeddedDocument, ...]]: The cached corpus in file order, or
            None if there is no usable cache.
        """
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            logger.info("No embeddings cache at %s. Will compute embeddings.", self.path)
            return None
        except (OSError, ValueError) as e:
            logger.warning("Unreadable embeddings cache at %s (%s). Will compute embeddings.", self.path, e)
            return None

        try:
            corpus = tuple(_record_to_document(r) for r in raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed embeddings cache at %s (%s). Will compute embeddings.", self.path, e)
            return None
        if not corpus:
            logger.warning("Empty embeddings cache at %s. Will compute embeddings.", self.path)
            return None
        dims = {len(d.embedding) for d in corpus}
        if len(dims) != 1:
            logger.warning("Inconsistent embedding dimensions %s in %s. Will compute embeddings.", sorted(dims), self.path)
            return None

        logger.info("Loaded %d embeddings from %s", len(corpus), self.path)
        return corpus

    def save(self, corpus: Sequence[EmbeddedDocument]) -> None:
        """Persist the full corpus atomically (temp file + fsync + rename)."""
        records = [
            {
                "id": d.document.id,
                "title": d.document.title,
                "snippet": d.document.snippet,
                "embedding": list(d.embedding),
            }
            for d in corpus
        ]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
        logger.info("Embeddings saved to %s (%d documents)", self.path, len(records))

    async def aload(self) -> Optional[Tuple[EmbeddedDocument, ...]]:
        return await asyncio.to_thread(self.load)

    async def asave(self, corpus: Sequence[EmbeddedDocument]) -> None:
        await asyncio.to_thread(self.save, corpus)


def _record_to_document(record: Any) -> EmbeddedDocument:
    """Rebuild one EmbeddedDocument from a cache record, validating field types."""
    if not isinstance(record, dict):
        raise TypeError(f"cache record must be an object, got {type(record).__name__}")
    fields: List[str] = []
    for key in ("id", "title", "snippet"):
        value = record[key]
        if not isinstance(value, str):
            raise TypeError(f"cache field {key!r} must be a string")
        fields.append(value)
    embedding = record["embedding"]
    if not isinstance(embedding, list) or not embedding:
        raise TypeError("cache field 'embedding' must be a non-empty list")
    if not all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in embedding):
        raise TypeError("cache field 'embedding' must contain numbers")
    doc = Document(id=fields[0], title=fields[1], snippet=fields[2])
    return EmbeddedDocument(document=doc, embedding=tuple(float(x) for x in embedding))
