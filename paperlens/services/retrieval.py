"""In-memory chunk retrieval with vector search and keyword fallback.

The :class:`Retriever` holds the chunk index for the currently open
document: an ordered list of :class:`~paperlens.models.document.TextChunk`
and, optionally, one embedding vector per chunk at the same position.

Retrieval has two scoring paths that are never mixed:

1. **Vector** -- when vectors are indexed and an embedding provider is
   configured, the query is embedded and every chunk is scored by cosine
   similarity.
2. **Keyword** -- otherwise, or if embedding the query fails, each chunk is
   scored by how many times the query's lower-cased terms occur in it.
   Chunks scoring zero are dropped.

Both paths sort stably (numpy ``argsort(kind="stable")`` for vectors), so
ties keep document order and repeated queries return identical results.

The index is only ever replaced wholesale (:meth:`Retriever.ingest`,
:meth:`Retriever.clear`); the vector matrix is either empty or has exactly
one row per chunk.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import structlog

from paperlens.interfaces.embedding_provider import IEmbeddingProvider
from paperlens.models.document import RetrievalCandidate, RetrievalMethod, TextChunk
from paperlens.utils.errors import PaperLensError

logger = structlog.get_logger(logger_name=__name__)

_EMPTY_MATRIX = np.empty((0, 0), dtype=np.float64)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors, in ``[-1, 1]``.

    Returns ``0.0`` when either vector has zero magnitude or the lengths
    differ.
    """
    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)
    if vec_a.shape != vec_b.shape or vec_a.size == 0:
        return 0.0
    return float(cosine_scores(vec_a, vec_b[np.newaxis, :])[0])


def cosine_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of *query* against every row of *matrix*.

    Rows (or a query) with zero magnitude score ``0.0``; results are
    clipped to ``[-1, 1]``.
    """
    if matrix.size == 0 or matrix.shape[1] != query.shape[0]:
        return np.zeros(matrix.shape[0], dtype=np.float64)
    query_norm = np.linalg.norm(query)
    row_norms = np.linalg.norm(matrix, axis=1)
    norm_product = row_norms * query_norm
    dots = np.dot(matrix, query)
    scores = np.divide(dots, norm_product, out=np.zeros_like(dots), where=norm_product > 0)
    return np.clip(scores, -1.0, 1.0)


def keyword_score(text: str, terms: set[str]) -> int:
    """Total non-overlapping occurrences of *terms* in *text*, case-insensitive."""
    lowered = text.lower()
    return sum(lowered.count(term) for term in terms)


class Retriever:
    """Chunk index for one open document.

    Parameters
    ----------
    embedding_provider:
        Used to embed queries on the vector path.  ``None`` (or a provider
        whose :meth:`is_available` is ``False``) forces keyword retrieval.
    default_limit:
        Number of chunks returned when :meth:`retrieve` gets no limit.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider | None = None,
        default_limit: int = 3,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._default_limit = default_limit
        self._chunks: list[TextChunk] = []
        self._vectors: np.ndarray = _EMPTY_MATRIX

    # ------------------------------------------------------------------
    # Index management
    # ------------------------------------------------------------------

    def ingest(
        self,
        chunks: Sequence[TextChunk],
        vectors: Sequence[Sequence[float]] | None = None,
    ) -> None:
        """Replace the index with *chunks* and their positionally aligned *vectors*.

        Raises
        ------
        ValueError
            If *vectors* is non-empty and its length differs from *chunks*.
        """
        vectors = [] if vectors is None else list(vectors)
        if vectors and len(vectors) != len(chunks):
            raise ValueError(
                f"Got {len(vectors)} vectors for {len(chunks)} chunks; "
                "vectors must be empty or one per chunk"
            )
        matrix = np.asarray(vectors, dtype=np.float64) if vectors else _EMPTY_MATRIX
        if matrix.ndim != 2:
            raise ValueError("Vectors must all have the same dimension")
        self._chunks = list(chunks)
        self._vectors = matrix
        logger.info(
            "retriever_index_replaced",
            chunks=len(self._chunks),
            vectors=self._vectors.shape[0],
        )

    def clear(self) -> None:
        self._chunks = []
        self._vectors = _EMPTY_MATRIX

    @property
    def chunks(self) -> list[TextChunk]:
        return list(self._chunks)

    @property
    def has_vectors(self) -> bool:
        return self._vectors.shape[0] > 0

    @property
    def is_empty(self) -> bool:
        return not self._chunks

    @property
    def embedding_provider(self) -> IEmbeddingProvider | None:
        return self._embedding_provider

    def embeddings_enabled(self) -> bool:
        """Return ``True`` if queries can be embedded (provider configured)."""
        return self._embedding_provider is not None and self._embedding_provider.is_available()

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def retrieve(self, query: str, limit: int | None = None) -> list[TextChunk]:
        """Return the best-matching chunks for *query*, best first."""
        candidates = await self.retrieve_candidates(query, limit)
        return [c.chunk for c in candidates]

    async def retrieve_candidates(
        self, query: str, limit: int | None = None
    ) -> list[RetrievalCandidate]:
        """Return scored candidates for *query*, sorted by non-increasing score."""
        limit = self._default_limit if limit is None else limit
        if not self._chunks or limit <= 0 or not query.strip():
            return []

        if self.has_vectors and self.embeddings_enabled():
            try:
                query_vector = await self._embedding_provider.embed_single(query)  # type: ignore[union-attr]
            except PaperLensError as exc:
                logger.warning(
                    "query_embedding_failed_falling_back_to_keywords",
                    error=str(exc),
                    error_kind=exc.kind.value,
                )
            else:
                return self.vector_search(query_vector, limit)

        return self.keyword_search(query, limit)

    def vector_search(self, query_vector: Sequence[float], limit: int) -> list[RetrievalCandidate]:
        """Rank every indexed chunk by cosine similarity to *query_vector*."""
        scores = cosine_scores(np.asarray(query_vector, dtype=np.float64), self._vectors)
        order = np.argsort(-scores, kind="stable")[:limit]
        return [
            RetrievalCandidate(
                chunk=self._chunks[i],
                score=float(scores[i]),
                method=RetrievalMethod.VECTOR,
            )
            for i in order
        ]

    def keyword_search(self, query: str, limit: int) -> list[RetrievalCandidate]:
        """Rank chunks by occurrences of the query's terms; zero scores are dropped."""
        terms = set(query.lower().split())
        if not terms:
            return []
        scored: list[RetrievalCandidate] = []
        for chunk in self._chunks:
            score = keyword_score(chunk.text, terms)
            if score > 0:
                scored.append(
                    RetrievalCandidate(chunk=chunk, score=score, method=RetrievalMethod.KEYWORD)
                )
        scored.sort(key=lambda c: c.score, reverse=True)
        return scored[:limit]
