"""Query orchestration for /generate.

Per request, linearly:
1. validate the prompt (PromptRequiredError, before any outbound call)
2. embed it in search-query mode
3. rank the corpus and keep the top k
4. expose each top document to the chat capability as its own grounding document
5. call the chat capability with the persona and a low temperature
6. return text plus citations

Failures in steps 2, 3 and 5 are wrapped in CapabilityError for the request boundary.
"""
import logging
import time
from typing import List, Optional

from codeguide.config import settings
from codeguide.corpus import CorpusHandle
from codeguide.embedding import Embedder, embed_query
from codeguide.generation import ChatModel, ChatResult
from codeguide.obs import span
from codeguide.retrieval import LinearScanRanker, Ranker

logger = logging.getLogger(__name__)


class PromptRequiredError(ValueError):
    """Raised when the prompt is missing or blank."""


class CapabilityError(RuntimeError):
    """Raised when embedding, ranking or chat fails while answering a request."""

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage


class QueryOrchestrator:
    """Answers prompts against a ready corpus using the embedding and chat capabilities."""

    def __init__(
        self,
        corpus: CorpusHandle,
        embedder: Embedder,
        chat: ChatModel,
        ranker: Optional[Ranker] = None,
        top_k: Optional[int] = None,
        preamble: Optional[str] = None,
        temperature: Optional[float] = None,
    ):
        self.corpus = corpus
        self.embedder = embedder
        self.chat = chat
        self.ranker = ranker or LinearScanRanker()
        self.top_k = top_k if top_k is not None else settings.TOP_K
        self.preamble = preamble if preamble is not None else settings.CHAT_PREAMBLE
        self.temperature = temperature if temperature is not None else settings.CHAT_TEMPERATURE

    async def generate(self, prompt: Optional[str]) -> ChatResult:
        """Run the retrieval-augmented generation flow for one prompt.

        Raises:
            PromptRequiredError: Prompt missing or blank.
            CorpusNotReadyError: The corpus has not finished building.
            CapabilityError: Query embedding, ranking or the chat call failed.
        """
        if prompt is None or not prompt.strip():
            raise PromptRequiredError("Prompt is required")
        documents = self.corpus.documents

        t0 = time.time()
        try:
            with span("embed_query"):
                query_vector = await embed_query(self.embedder, prompt)
        except Exception as e:
            raise CapabilityError("embedding", e) from e

        try:
            with span("rank", {"corpus_size": len(documents), "k": self.top_k}):
                ranked = self.ranker.rank(query_vector, documents, self.top_k)
        except Exception as e:
            raise CapabilityError("ranking", e) from e
        logger.info("Retrieved top %d documents.", len(ranked))

        grounding: List[dict] = [{"id": r.document.id, "text": r.document.text} for r in ranked]
        try:
            with span("chat", {"documents": len(grounding)}):
                result = await self.chat.chat(
                    message=prompt,
                    documents=grounding,
                    preamble=self.preamble,
                    temperature=self.temperature,
                )
        except Exception as e:
            raise CapabilityError("chat", e) from e

        logger.info(
            "Generated answer: citations=%d, latency_ms=%d",
            len(result.citations),
            int((time.time() - t0) * 1000),
        )
        return result
