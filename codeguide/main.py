"""FastAPI application entrypoint and routes.

Exposes /health and /generate, configures CORS, and starts the corpus build at startup.
The build runs as a background task by default so the server listens immediately; until the
corpus is READY, /generate answers 503 {"error": "Corpus is not ready"}. Set
CORPUS_AWAIT_ON_STARTUP=true to block startup until the build completes instead.
"""
import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import Optional, Sequence

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from codeguide.cache import EmbeddingCacheStore
from codeguide.config import settings
from codeguide.corpus import CorpusHandle, CorpusNotReadyError, CorpusState
from codeguide.embedding import Embedder, OpenAIEmbedder
from codeguide.generation import ChatModel, OpenAIChat
from codeguide.ingestion.catalogs import source_paths
from codeguide.pipeline import CapabilityError, PromptRequiredError, QueryOrchestrator
from codeguide.schemas import ErrorResponse, GenerateRequest, GenerateResponse, HealthResponse

logger = logging.getLogger(__name__)

PROVIDER_NAME = "OpenAI"
PROMPT_REQUIRED = "Prompt is required"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    embedder: Optional[Embedder] = None,
    chat: Optional[ChatModel] = None,
    store: Optional[EmbeddingCacheStore] = None,
    corpus: Optional[CorpusHandle] = None,
    sources: Optional[Sequence[Path]] = None,
    await_corpus: Optional[bool] = None,
) -> FastAPI:
    """Build the FastAPI app with its capabilities and corpus handle.

    Args:
        embedder: Embedding capability (defaults to OpenAIEmbedder).
        chat: Chat capability (defaults to OpenAIChat).
        store: Embedding cache store (defaults to EMBEDDINGS_CACHE_PATH).
        corpus: Corpus handle; a handle that is already READY is used as-is.
        sources: Catalog files (defaults to SOURCE_DIR / SOURCE_FILES).
        await_corpus: Block startup until the corpus is built (defaults to
            CORPUS_AWAIT_ON_STARTUP).

    Returns:
        FastAPI: The configured application.
    """
    if embedder is None:
        embedder = OpenAIEmbedder()
    if chat is None:
        chat = OpenAIChat()
    if store is None:
        store = EmbeddingCacheStore(settings.EMBEDDINGS_CACHE_PATH)
    if corpus is None:
        corpus = CorpusHandle()
    paths = list(sources) if sources is not None else source_paths(settings.SOURCE_DIR, settings.SOURCE_FILES)
    if await_corpus is None:
        await_corpus = settings.CORPUS_AWAIT_ON_STARTUP
    orchestrator = QueryOrchestrator(corpus=corpus, embedder=embedder, chat=chat)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start (or await) the corpus build; cancel it on shutdown if still running."""
        task: Optional[asyncio.Task] = None
        if corpus.state is CorpusState.PENDING:
            init = corpus.initialize(
                store,
                paths,
                embedder,
                batch_size=settings.EMBED_BATCH_SIZE,
                cooldown_seconds=settings.EMBED_BATCH_COOLDOWN_SECONDS,
            )
            if await_corpus:
                await init
            else:
                task = asyncio.create_task(init)
        yield
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    app = FastAPI(title="Codeguide RAG API", version="0.1.0", lifespan=lifespan)
    app.state.corpus = corpus
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # missing, non-JSON or non-string prompt bodies all mean "no usable prompt"
        logger.info("Rejected /generate body: %s", exc.errors())
        return _error(400, PROMPT_REQUIRED)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Liveness probe including corpus state and size."""
        return HealthResponse(status="ok", corpus=corpus.state.value, documents=len(corpus))

    @app.post(
        "/generate",
        response_model=GenerateResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    )
    async def generate(req: GenerateRequest):
        """Answer a prompt grounded in the top-k most similar corpus documents.

        Returns:
            GenerateResponse on success; {"error": ...} with 400 (no prompt), 503 (corpus
            not ready) or 500 (provider failure, cause logged server side).
        """
        try:
            result = await orchestrator.generate(req.prompt)
        except PromptRequiredError:
            return _error(400, PROMPT_REQUIRED)
        except CorpusNotReadyError as e:
            logger.warning("Rejected /generate: %s", e)
            return _error(503, "Corpus is not ready")
        except CapabilityError:
            logger.exception("Error communicating with %s API", PROVIDER_NAME)
            return _error(500, f"{PROVIDER_NAME} request failed")
        return GenerateResponse(text=result.text, citations=result.citations)

    return app


app = create_app()


def run() -> None:
    """Run the API with uvicorn on HOST:PORT."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logger.info("Listening on http://%s:%d", settings.HOST, settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
