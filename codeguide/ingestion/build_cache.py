"""Offline corpus builder.

Normalizes the source catalogs, embeds them in paced batches and writes the embedding cache,
so the API can warm-start without any embedding calls.

Usage:
  python -m codeguide.ingestion.build_cache
  python -m codeguide.ingestion.build_cache --force --cooldown 0
  python -m codeguide.ingestion.build_cache --list

Configuration:
- Sources: codeguide.config.settings.SOURCE_DIR, SOURCE_FILES
- Cache: codeguide.config.settings.EMBEDDINGS_CACHE_PATH
- Batching: codeguide.config.settings.EMBED_BATCH_SIZE, EMBED_BATCH_COOLDOWN_SECONDS
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from codeguide.cache import EmbeddingCacheStore
from codeguide.config import settings
from codeguide.corpus import build_corpus
from codeguide.embedding import EmbeddingError, OpenAIEmbedder
from codeguide.ingestion.catalogs import load_documents, source_paths

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the embedding cache from the source catalogs.")
    parser.add_argument("--source-dir", default=settings.SOURCE_DIR, help="Directory holding the catalog files")
    parser.add_argument("--cache-path", default=settings.EMBEDDINGS_CACHE_PATH, help="Embedding cache file to write")
    parser.add_argument("--batch-size", type=int, default=settings.EMBED_BATCH_SIZE, help="Documents per embedding call")
    parser.add_argument(
        "--cooldown",
        type=float,
        default=settings.EMBED_BATCH_COOLDOWN_SECONDS,
        help="Seconds to wait between embedding batches",
    )
    parser.add_argument("--force", action="store_true", help="Ignore an existing cache and recompute")
    parser.add_argument("--list", action="store_true", help="Print normalized documents without embedding")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (default: INFO)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    paths = source_paths(args.source_dir, settings.SOURCE_FILES)

    if args.list:
        for doc in load_documents(paths):
            print(f"{doc.id}\t{doc.title}")
        return 0

    if not 1 <= args.batch_size <= 96:
        logger.error("--batch-size must be between 1 and 96, got %d", args.batch_size)
        return 2

    store = EmbeddingCacheStore(args.cache_path)
    logger.info("Building corpus from %s into %s", args.source_dir, args.cache_path)
    try:
        corpus = asyncio.run(
            build_corpus(
                store,
                paths,
                OpenAIEmbedder(),
                batch_size=args.batch_size,
                cooldown_seconds=args.cooldown,
                use_cache=not args.force,
            )
        )
    except EmbeddingError:
        logger.exception("Embedding run failed; cache not written")
        return 1
    print(f"[BUILD-CACHE] {args.cache_path} -> {len(corpus)} documents")
    return 0


if __name__ == "__main__":
    sys.exit(main())
