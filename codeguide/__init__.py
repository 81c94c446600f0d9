"""Application package for the programming-guide RAG service.

Submodules overview:
- main: FastAPI application factory, lifespan and routes.
- config: Application settings and environment variable loading.
- models: Document, EmbeddedDocument and RankedResult records.
- schemas: Pydantic request/response models for API contracts.
- ingestion: Catalog normalizers and the offline cache builder.
- cache: Single-file embedding cache (atomic save, cold/warm start).
- embedding: Embedding capability and paced batch embedding.
- retrieval: Cosine similarity and top-k ranking.
- generation: Chat capability with grounding documents and citations.
- corpus: Corpus build and the read-only corpus handle.
- pipeline: Per-request query orchestration.
- obs: Observability utilities (OpenTelemetry spans).
- utils: General-purpose helper functions.
"""
