from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, FrozenSet, Hashable, List, Optional, Tuple

import numpy as np

# -----------------------------
# Errors
# -----------------------------

class SchemaNLPError(Exception):
    """Base class for scoring-engine errors."""


class UnknownWordError(SchemaNLPError, KeyError):
    """A word has no row in the embedding table."""

    def __init__(self, word: str):
        super().__init__(word)
        self.word = word

    def __str__(self) -> str:
        return f"'{self.word}' is not in the embedding vocabulary"


class UnknownCueError(UnknownWordError):
    """A cue has no row in the embedding table, so no dictionary can be built."""

    def __str__(self) -> str:
        return (
            f"cue '{self.word}' is not in the embedding vocabulary; "
            "rename it to a single in-vocabulary word"
        )


class EmptyCorpusOfOtherCuesError(SchemaNLPError):
    """Mismatch baseline requested for a corpus with a single cue."""


class IncompleteDictionaryCacheError(SchemaNLPError):
    """Scoring was attempted before every corpus cue had a finished dictionary."""


# -----------------------------
# Data structures
# -----------------------------

@dataclass(frozen=True)
class Narrative:
    """One cleaned narrative: id, its cue and its tokens in source order."""
    narrative_id: Hashable
    cue: str
    tokens: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SimilarityDictionary:
    """Ranked neighbours of a cue, best first."""
    cue: str
    words: Tuple[str, ...]
    scores: np.ndarray

    def __len__(self) -> int:
        return len(self.words)

    def truncate(self, n: int) -> "SimilarityDictionary":
        """Prefix of length min(n, len(self)); never re-ranks."""
        if n < 0:
            raise ValueError("n must be >= 0")
        if n >= len(self.words):
            return self
        return SimilarityDictionary(self.cue, self.words[:n], self.scores[:n])

    def word_set(self, n: Optional[int] = None) -> FrozenSet[str]:
        words = self.words if n is None else self.words[: max(0, n)]
        return frozenset(words)


@dataclass(frozen=True)
class SchemaMatch:
    count: int
    matched: Tuple[str, ...]


@dataclass
class ScoreResult:
    """Per-narrative scores (terminal output of the pipeline)."""
    narrative_id: Hashable
    cue: str
    non_stopword_word_count: int
    schema_words_count: float           # int, or NaN when the cue failed to build
    schema_words_identified: Tuple[str, ...]
    schema_mismatch_count: float        # NaN when no other cue exists
    error: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "nonStopwordWordCount": int(self.non_stopword_word_count),
            "schemaWordsCount": self.schema_words_count,
            "schemaWordsIdentified": " ".join(self.schema_words_identified),
            "schemaMismatchCount": float(self.schema_mismatch_count),
        }


@dataclass
class BuildReport:
    """Outcome of dictionary construction across all cues."""
    built: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
