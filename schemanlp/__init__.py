"""
SchemaNLP — automated scoring of schematic content in narratives.

This package exposes:
- Embedding store (word -> vector table, GloVe / .npz loaders)
- Similarity ranking and the per-cue dictionary cache
- Scoring engine (schema word counts and the mismatch baseline)
- Narrative preprocessing and corpus word counts
- Output writers (CSV exports, JSON run summary)
"""

from __future__ import annotations

__version__ = "1.0.0"

def get_version() -> str:
    """Return the SchemaNLP package version."""
    return __version__

# Shared types & errors
from .types import (
    Narrative,
    SimilarityDictionary,
    SchemaMatch,
    ScoreResult,
    BuildReport,
    SchemaNLPError,
    UnknownWordError,
    UnknownCueError,
    EmptyCorpusOfOtherCuesError,
    IncompleteDictionaryCacheError,
)

# Core engine
from .embeddings import EmbeddingStore, load_embeddings
from .similarity import cosine_scores, rank, rank_cue
from .dictionaries import (
    DEFAULT_NUM_SIMILAR_WORDS,
    DictionaryCache,
    truncate,
    dictionaries_frame,
    export_dictionaries,
)
from .scoring import (
    DEFAULT_NUM_WORDS_TO_USE,
    ScoringEngine,
    scores_frame,
    join_scores,
)

# Preprocessing & descriptives
from .preprocess import (
    build_stopwords,
    group_triples,
    narratives_from_frame,
    read_narratives_csv,
)
from .wordcounts import (
    cue_word_counts,
    singleton_proportion,
    singleton_proportions_per_cue,
)

# Outputs
from .tracing import RunOutputs, save_summary, load_summary

__all__ = [
    "__version__",
    "get_version",
    # types
    "Narrative",
    "SimilarityDictionary",
    "SchemaMatch",
    "ScoreResult",
    "BuildReport",
    "SchemaNLPError",
    "UnknownWordError",
    "UnknownCueError",
    "EmptyCorpusOfOtherCuesError",
    "IncompleteDictionaryCacheError",
    # core
    "EmbeddingStore",
    "load_embeddings",
    "cosine_scores",
    "rank",
    "rank_cue",
    "DEFAULT_NUM_SIMILAR_WORDS",
    "DictionaryCache",
    "truncate",
    "dictionaries_frame",
    "export_dictionaries",
    "DEFAULT_NUM_WORDS_TO_USE",
    "ScoringEngine",
    "scores_frame",
    "join_scores",
    # preprocessing
    "build_stopwords",
    "group_triples",
    "narratives_from_frame",
    "read_narratives_csv",
    "cue_word_counts",
    "singleton_proportion",
    "singleton_proportions_per_cue",
    # outputs
    "RunOutputs",
    "save_summary",
    "load_summary",
]
