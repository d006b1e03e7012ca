"""
Similarity Ranker
-----------------
Cosine similarity of one cue vector against the whole vocabulary:

    score = dot(a, b) / (‖a‖ · ‖b‖)

Vocabulary norms come precomputed from the EmbeddingStore, so each call is a
single (V, D) @ (D,) product plus one stable sort. Words with a zero vector
get score -inf and sort last. Ties keep vocabulary order.
"""
from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np

from .embeddings import EmbeddingStore
from .types import SimilarityDictionary, UnknownCueError

__all__ = ["cosine_scores", "rank", "rank_cue"]


def cosine_scores(cue_vector: np.ndarray, vocabulary: EmbeddingStore) -> np.ndarray:
    """Return (V,) cosine similarities, with -inf where a norm is zero."""
    v = np.asarray(cue_vector, dtype=np.float64).ravel()
    if v.shape[0] != vocabulary.dimension():
        raise ValueError(f"cue vector has dimension {v.shape[0]}, vocabulary has {vocabulary.dimension()}")
    norms = vocabulary.norms
    cue_norm = float(np.linalg.norm(v))
    scores = np.full(norms.shape[0], -np.inf, dtype=np.float64)
    if cue_norm == 0.0:
        return scores
    # the (V, D) table is never copied; zero-norm rows keep -inf
    valid = norms > 0.0
    dots = vocabulary.matrix @ v
    np.divide(dots, norms * cue_norm, out=scores, where=valid)
    np.minimum(scores, 1.0, out=scores, where=valid)
    np.maximum(scores, -1.0, out=scores, where=valid)
    return scores


def rank(cue_vector: np.ndarray, vocabulary: EmbeddingStore, top_n: Optional[int] = None) -> List[Tuple[str, float]]:
    """Ranked (word, score) pairs, best first, truncated to `top_n`."""
    order, scores = _ranked_order(cue_vector, vocabulary, top_n)
    words = vocabulary.words
    return [(words[i], float(scores[i])) for i in order]


def rank_cue(cue: str, vocabulary: EmbeddingStore, top_n: Optional[int] = None) -> SimilarityDictionary:
    """Build the SimilarityDictionary for `cue`.

    Raises UnknownCueError before any ranking work when the cue is not in
    the vocabulary.
    """
    if cue not in vocabulary:
        raise UnknownCueError(cue)
    order, scores = _ranked_order(vocabulary.vector(cue), vocabulary, top_n)
    words = vocabulary.words
    return SimilarityDictionary(
        cue=cue.lower(),
        words=tuple(words[i] for i in order),
        scores=scores[order],
    )


def _ranked_order(cue_vector: np.ndarray, vocabulary: EmbeddingStore, top_n: Optional[int]):
    if top_n is not None and top_n < 0:
        raise ValueError("top_n must be >= 0")
    scores = cosine_scores(cue_vector, vocabulary)
    # stable sort on the negated scores keeps vocabulary order among ties
    order = np.argsort(-scores, kind="stable")
    if top_n is not None:
        order = order[:top_n]
    return order, scores
