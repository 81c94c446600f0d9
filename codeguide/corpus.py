"""Corpus construction and the process-wide corpus handle.

The corpus is built once at startup:
- warm start: the embedding cache loads and is used as-is (no embedding calls)
- cold start: catalogs are normalized, batch-embedded, persisted, then used

CorpusHandle makes the lifecycle explicit (PENDING -> BUILDING -> READY | FAILED). Its
documents are only readable once READY and are never mutated afterwards, so concurrent
requests share them without locking.
"""
import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Tuple

from codeguide.cache import EmbeddingCacheStore
from codeguide.embedding import Embedder, embed_documents
from codeguide.ingestion.catalogs import aload_documents
from codeguide.models import EmbeddedDocument
from codeguide.obs import span

logger = logging.getLogger(__name__)

Corpus = Tuple[EmbeddedDocument, ...]


class CorpusState(str, Enum):
    PENDING = "pending"
    BUILDING = "building"
    READY = "ready"
    FAILED = "failed"


class CorpusNotReadyError(RuntimeError):
    """Raised when the corpus is read before it finished building (or after it failed)."""

    def __init__(self, state: CorpusState):
        super().__init__(f"Corpus is not ready (state={state.value})")
        self.state = state


async def build_corpus(
    store: EmbeddingCacheStore,
    paths: Sequence[Path],
    embedder: Embedder,
    batch_size: int = 96,
    cooldown_seconds: float = 10.0,
    use_cache: bool = True,
) -> Corpus:
    """Load the corpus from cache, or compute and persist it.

    Args:
        store: Embedding cache store.
        paths: Source catalog files, in declaration order.
        embedder: Embedding capability for the cold path.
        batch_size: Documents per embedding request.
        cooldown_seconds: Delay between embedding batches.
        use_cache: When False the cache is ignored and overwritten.

    Returns:
        Corpus: Embedded documents in normalizer order.

    Raises:
        EmbeddingError: Any embedding batch failed; nothing is persisted.
    """
    if use_cache:
        cached = await store.aload()
        if cached is not None:
            logger.info("Warm start: using %d cached documents", len(cached))
            return cached

    documents = await aload_documents(paths)
    if not documents:
        logger.warning("No documents loaded from sources; corpus is empty and will not be cached")
        return ()

    logger.info("Cold start: embedding %d documents...", len(documents))
    vectors = await embed_documents(
        embedder, documents, batch_size=batch_size, cooldown_seconds=cooldown_seconds
    )
    corpus = tuple(
        EmbeddedDocument(document=doc, embedding=tuple(float(x) for x in vec))
        for doc, vec in zip(documents, vectors)
    )
    await store.asave(corpus)
    logger.info("Embeddings ready.")
    return corpus


class CorpusHandle:
    """Owner of the process-wide corpus; single writer at init, read-only afterwards."""

    def __init__(self, documents: Optional[Sequence[EmbeddedDocument]] = None):
        self._documents: Optional[Corpus] = None
        self.state = CorpusState.PENDING
        self.error: Optional[BaseException] = None
        if documents is not None:
            self._publish(tuple(documents))

    @property
    def is_ready(self) -> bool:
        return self.state is CorpusState.READY

    @property
    def documents(self) -> Corpus:
        """The embedded corpus.

        Raises:
            CorpusNotReadyError: Unless the handle is READY.
        """
        if self._documents is None or not self.is_ready:
            raise CorpusNotReadyError(self.state)
        return self._documents

    def __len__(self) -> int:
        return len(self._documents) if self._documents is not None else 0

    def _publish(self, documents: Corpus) -> None:
        self._documents = documents
        self.state = CorpusState.READY

    async def initialize(
        self,
        store: EmbeddingCacheStore,
        paths: Sequence[Path],
        embedder: Embedder,
        batch_size: int = 96,
        cooldown_seconds: float = 10.0,
    ) -> None:
        """Build the corpus once and publish it.

        A failed build leaves the handle FAILED with the cause in `error`; it is logged
        here because this usually runs as a background task with no awaiting caller.
        """
        if self.state is not CorpusState.PENDING:
            raise RuntimeError(f"Corpus already initialized (state={self.state.value})")
        self.state = CorpusState.BUILDING
        try:
            with span("corpus_build", {"sources": len(paths)}):
                documents = await build_corpus(
                    store, paths, embedder, batch_size=batch_size, cooldown_seconds=cooldown_seconds
                )
        except asyncio.CancelledError:
            self.state = CorpusState.FAILED
            raise
        except Exception as e:
            self.state = CorpusState.FAILED
            self.error = e
            logger.exception("Corpus build failed; /generate will answer 503")
            return
        self._publish(documents)
        logger.info("Corpus ready with %d documents", len(documents))
