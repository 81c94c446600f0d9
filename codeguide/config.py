"""Application configuration and environment-driven settings.

Defines the Settings class based on pydantic-settings to centralize configuration for:
- API keys, model names and outbound call limits
- Embedding input modes (document vs query)
- Source catalogs and the persisted embedding cache
- Batch embedding pacing
- Retrieval/generation knobs
- Server and observability options

A warning is logged if OPENAI_API_KEY is not set; importing never fails so tests and
offline tooling can run without credentials.
"""
import logging
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_PREAMBLE = (
    "You are a professional and friendly coding assistant. You must answer the user's questions "
    "using ONLY the information provided in the documents whenever possible. If a topic is not "
    "covered by the documents, you may use your own knowledge, but ONLY in the domain of "
    "programming and project architectures. Stay strictly within this domain: programming, "
    "programming languages, best practices in architecture patterns, design patterns, project "
    "types, data structures, algorithms, fun projects, project based learning and things to do. "
    "Do NOT provide information about spaghetti code, bad practices, cheap workarounds, or "
    "inefficient patterns or algorithms. Always write in a helpful, engaging tone; answers may be "
    "technical and comprehensive for developers of all experience levels. If a language or pattern "
    "is not referred to in the documents, ask the user to give more insight."
)


class Settings(BaseSettings):
    """Strongly-typed application settings loaded from environment variables.

    Uses pydantic-settings to populate fields from a .env file or process env.
    See individual field names for semantics and safe defaults.
    """
    # Provider
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key")
    OPENAI_BASE_URL: Optional[str] = None  # OpenAI-compatible endpoint override
    OPENAI_CHAT_MODEL: str = "gpt-4o-mini"
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    OPENAI_TIMEOUT_SECONDS: float = 30.0
    OPENAI_MAX_RETRIES: int = 2

    # Embedding modes. Empty for OpenAI models; set e.g. "search_document: " / "search_query: "
    # for prefix-trained asymmetric models behind OPENAI_BASE_URL.
    EMBEDDING_DOCUMENT_PREFIX: str = ""
    EMBEDDING_QUERY_PREFIX: str = ""

    # Corpus
    SOURCE_DIR: str = "documents"
    SOURCE_FILES: List[str] = [
        "api_patterns.json",
        "architectures.json",
        "design_patterns.json",
        "dsa.json",
        "languages.json",
        "projects.json",
    ]
    EMBEDDINGS_CACHE_PATH: str = "documents/embeddings.json"
    EMBED_BATCH_SIZE: int = Field(default=96, ge=1, le=96)  # provider cap per call
    EMBED_BATCH_COOLDOWN_SECONDS: float = Field(default=10.0, ge=0.0)
    CORPUS_AWAIT_ON_STARTUP: bool = False

    # Retrieval/Generation
    TOP_K: int = Field(default=10, ge=1)
    CHAT_TEMPERATURE: float = 0.4
    CHAT_PREAMBLE: str = DEFAULT_PREAMBLE
    MAX_OUTPUT_TOKENS: Optional[int] = None

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    CORS_ALLOW_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    # Observability
    OTEL_CONSOLE_EXPORT: bool = False

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()

if not settings.OPENAI_API_KEY:
    # Avoid raising to allow local scaffolding before setting .env
    logger.warning("OPENAI_API_KEY not set. Set it in .env before building the corpus or calling /generate.")
