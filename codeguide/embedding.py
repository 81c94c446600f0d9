"""Embedding capability and batched corpus embedding.

Provides:
- Embedder: protocol for the embedding capability, embed(texts, input_type) -> vectors.
- OpenAIEmbedder: Embedder backed by the OpenAI (or OpenAI-compatible) embeddings API.
- embed_query: convenience helper embedding a single query string in search-query mode.
- embed_documents: batch embedder for corpus construction with a cooldown between batches.

Documents and queries are embedded in different modes (SEARCH_DOCUMENT vs SEARCH_QUERY).
OpenAIEmbedder expresses the mode as a configurable text prefix (empty by default, for
prefix-trained models served behind an OpenAI-compatible endpoint).
"""
import asyncio
import logging
import math
from typing import Dict, List, Optional, Protocol, Sequence

from openai import AsyncOpenAI

from codeguide.config import settings
from codeguide.models import Document
from codeguide.obs import span

logger = logging.getLogger(__name__)

SEARCH_DOCUMENT = "search_document"
SEARCH_QUERY = "search_query"


class EmbeddingError(RuntimeError):
    """Raised when an embedding call fails or returns an unexpected result."""


class Embedder(Protocol):
    async def embed(self, texts: List[str], input_type: str) -> List[List[float]]:
        ...


class OpenAIEmbedder:
    """Embedding capability using the configured OpenAI embedding model.

    The AsyncOpenAI client is created lazily so importing and constructing the app does not
    require an API key. Timeouts and retry-with-backoff on 429/5xx come from the client,
    configured by OPENAI_TIMEOUT_SECONDS and OPENAI_MAX_RETRIES.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        prefixes: Optional[Dict[str, str]] = None,
    ):
        self._client = client
        self.model = model or settings.OPENAI_EMBEDDING_MODEL
        self.prefixes = prefixes if prefixes is not None else {
            SEARCH_DOCUMENT: settings.EMBEDDING_DOCUMENT_PREFIX,
            SEARCH_QUERY: settings.EMBEDDING_QUERY_PREFIX,
        }

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL,
                timeout=settings.OPENAI_TIMEOUT_SECONDS,
                max_retries=settings.OPENAI_MAX_RETRIES,
            )
        return self._client

    async def embed(self, texts: List[str], input_type: str) -> List[List[float]]:
        """Embed a batch of texts in the given mode.

        Args:
            texts: Input strings, one request for the whole list.
            input_type: SEARCH_DOCUMENT or SEARCH_QUERY.

        Returns:
            List[List[float]]: One vector per input text, in input order.
        """
        if input_type not in self.prefixes:
            raise ValueError(f"Unknown input_type: {input_type!r}")
        if not texts:
            return []
        prefix = self.prefixes[input_type]
        resp = await self.client.embeddings.create(
            model=self.model,
            input=[prefix + t for t in texts],
            encoding_format="float",
        )
        return [d.embedding for d in sorted(resp.data, key=lambda d: d.index)]


async def embed_query(embedder: Embedder, text: str) -> List[float]:
    """Embed a single query string in search-query mode.

    Raises:
        EmbeddingError: If the capability does not return exactly one vector.
    """
    vectors = await embedder.embed([text], SEARCH_QUERY)
    if len(vectors) != 1:
        raise EmbeddingError(f"Expected 1 query embedding, got {len(vectors)}")
    return vectors[0]


async def embed_documents(
    embedder: Embedder,
    documents: Sequence[Document],
    batch_size: int = 96,
    cooldown_seconds: float = 10.0,
) -> List[List[float]]:
    """Embed documents in consecutive batches, strictly one request at a time.

    Each request embeds "<title>. <snippet>" for up to batch_size documents. After every
    successful batch except the last, waits cooldown_seconds to stay under the provider's
    requests-per-minute limit.

    Args:
        embedder: Embedding capability.
        documents: Documents to embed, in corpus order.
        batch_size: Maximum documents per request (provider cap is 96).
        cooldown_seconds: Delay between batches; 0 disables pacing.

    Returns:
        List[List[float]]: One vector per document, same order as documents.

    Raises:
        EmbeddingError: Any batch fails or returns the wrong number of vectors. No partial
            result is returned.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    total = len(documents)
    num_batches = math.ceil(total / batch_size)
    embeddings: List[List[float]] = []

    for batch_no, start in enumerate(range(0, total, batch_size), start=1):
        batch = documents[start:start + batch_size]
        logger.info("Embedding batch %d of %d (%d documents)...", batch_no, num_batches, len(batch))
        with span("embed_batch", {"batch": batch_no, "size": len(batch)}):
            try:
                vectors = await embedder.embed([d.text for d in batch], SEARCH_DOCUMENT)
            except Exception as e:
                raise EmbeddingError(f"Embedding batch {batch_no} of {num_batches} failed: {e}") from e
        if len(vectors) != len(batch):
            raise EmbeddingError(
                f"Embedding batch {batch_no} returned {len(vectors)} vectors for {len(batch)} documents"
            )
        embeddings.extend(vectors)

        if cooldown_seconds > 0 and batch_no < num_batches:
            logger.debug("Cooling down %.1fs before next batch", cooldown_seconds)
            await asyncio.sleep(cooldown_seconds)

    return embeddings
