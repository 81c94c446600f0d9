"""Similarity ranking over the in-memory corpus.

This module implements:
- cosine_similarity: cosine of two vectors, 0.0 when either has zero magnitude
- Ranker: protocol for top-k retrieval, so an indexed implementation can replace the scan
- LinearScanRanker: exact full scan with numpy (O(n*d) per query)
- top_k: convenience wrapper returning only the Documents

Ordering is by descending score; equal scores keep corpus order (stable sort).
"""
from typing import List, Protocol, Sequence

import numpy as np

from codeguide.models import Document, EmbeddedDocument, RankedResult, Vector


def cosine_similarity(a: Vector, b: Vector) -> float:
    """Cosine similarity dot(a, b) / (|a| * |b|), clipped to [-1, 1].

    Args:
        a: First vector.
        b: Second vector, same dimensionality as a.

    Returns:
        float: Similarity in [-1, 1]; 0.0 if either vector has zero magnitude.

    Raises:
        ValueError: If the vectors differ in dimensionality.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"Dimension mismatch: {va.shape} vs {vb.shape}")
    na = np.linalg.norm(va)
    nb = np.linalg.norm(vb)
    if na == 0.0 or nb == 0.0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / (na * nb), -1.0, 1.0))


class Ranker(Protocol):
    def rank(self, query: Vector, corpus: Sequence[EmbeddedDocument], k: int) -> List[RankedResult]:
        ...


class LinearScanRanker:
    """Exact top-k by scoring every corpus vector against the query."""

    def rank(self, query: Vector, corpus: Sequence[EmbeddedDocument], k: int) -> List[RankedResult]:
        """Score the query against all documents and return the best k.

        Args:
            query: Query embedding.
            corpus: Embedded documents in corpus order.
            k: Maximum number of results.

        Returns:
            List[RankedResult]: min(k, len(corpus)) results, scores non-increasing.
        """
        if k <= 0 or not corpus:
            return []
        q = np.asarray(query, dtype=np.float64)
        matrix = np.asarray([d.embedding for d in corpus], dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[1] != q.shape[0]:
            raise ValueError(f"Dimension mismatch: corpus {matrix.shape} vs query {q.shape}")

        qn = np.linalg.norm(q)
        denom = np.linalg.norm(matrix, axis=1) * qn
        # zero-magnitude vectors score 0.0
        scores = np.divide(matrix @ q, denom, out=np.zeros(len(corpus)), where=denom > 0)
        scores = np.clip(scores, -1.0, 1.0)

        order = np.argsort(-scores, kind="stable")[:k]
        return [RankedResult(document=corpus[i].document, score=float(scores[i])) for i in order]


_default_ranker = LinearScanRanker()


def top_k(query: Vector, corpus: Sequence[EmbeddedDocument], k: int) -> List[Document]:
    """Return the k documents most similar to the query, best first."""
    return [r.document for r in _default_ranker.rank(query, corpus, k)]
