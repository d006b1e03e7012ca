"""
Scoring Engine
--------------
Counts schema words in a narrative and builds the mismatch baseline.

  schema_score(cue, tokens, n)
      tokens (in order, with repeats) that fall inside the top-n words of the
      cue's dictionary.
  mismatch_score(cue, tokens, n)
      mean (or median) schema count of the same tokens scored against every
      *other* corpus cue's dictionary; NaN when there is no other cue.

The engine only reads the DictionaryCache, and it only accepts a cache that
has been frozen after Phase 1 and holds every cue it is asked to score with.
"""
from __future__ import annotations

import math
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from tqdm import tqdm

from .dictionaries import DictionaryCache
from .types import (
    EmptyCorpusOfOtherCuesError,
    IncompleteDictionaryCacheError,
    Narrative,
    SchemaMatch,
    ScoreResult,
    UnknownCueError,
)

__all__ = [
    "DEFAULT_NUM_WORDS_TO_USE",
    "MISMATCH_STATISTICS",
    "ScoringEngine",
    "scores_frame",
    "join_scores",
]

DEFAULT_NUM_WORDS_TO_USE = 10_000
MISMATCH_STATISTICS = ("mean", "median")


class ScoringEngine:
    """Phase 2: per-narrative schema and mismatch scores over a frozen cache."""

    def __init__(
        self,
        cache: DictionaryCache,
        cues: Iterable[str],
        num_words: int = DEFAULT_NUM_WORDS_TO_USE,
        mismatch_statistic: str = "mean",
        failed_cues: Optional[Mapping[str, str]] = None,
    ):
        if not cache.frozen:
            raise IncompleteDictionaryCacheError("dictionary cache must be frozen before scoring")
        if num_words <= 0:
            raise ValueError("num_words must be > 0")
        if num_words > cache.num_similar_words:
            raise ValueError(
                f"num_words ({num_words}) exceeds the dictionary build size ({cache.num_similar_words})"
            )
        if mismatch_statistic not in MISMATCH_STATISTICS:
            raise ValueError(f"mismatch_statistic must be one of {MISMATCH_STATISTICS}")

        self.cues: Tuple[str, ...] = tuple(dict.fromkeys(c.lower() for c in cues))
        missing = [c for c in self.cues if c not in cache]
        if missing:
            raise IncompleteDictionaryCacheError(f"no dictionary built for cue(s): {', '.join(missing)}")

        self.cache = cache
        self.num_words = int(num_words)
        self.mismatch_statistic = mismatch_statistic
        self.failed_cues: Dict[str, str] = {k.lower(): v for k, v in (failed_cues or {}).items()}
        self._sets: Dict[Tuple[str, int], FrozenSet[str]] = {}
        self._sets_lock = threading.Lock()

    # -----------------------------
    # Core operations
    # -----------------------------

    def _word_set(self, cue: str, n: int) -> FrozenSet[str]:
        key = (cue.lower(), n)
        s = self._sets.get(key)
        if s is None:
            s = self.cache.get(cue).word_set(n)
            with self._sets_lock:
                s = self._sets.setdefault(key, s)
        return s

    def schema_score(self, cue: str, tokens: Sequence[str], num_words: Optional[int] = None) -> SchemaMatch:
        """Tokens of the narrative found in the top-`num_words` words of `cue`."""
        n = self.num_words if num_words is None else int(num_words)
        words = self._word_set(cue, n)
        matched = tuple(t for t in tokens if t in words)
        return SchemaMatch(count=len(matched), matched=matched)

    def other_cues(self, cue: str) -> Tuple[str, ...]:
        key = cue.lower()
        return tuple(c for c in self.cues if c != key)

    def mismatch_score(
        self,
        cue: str,
        tokens: Sequence[str],
        num_words: Optional[int] = None,
        strict: bool = False,
    ) -> float:
        """Chance-level baseline: schema counts under every other cue, reduced.

        Returns NaN when the corpus has no other cue, or raises
        EmptyCorpusOfOtherCuesError when `strict` is set.
        """
        others = self.other_cues(cue)
        if not others:
            if strict:
                raise EmptyCorpusOfOtherCuesError(f"no cue other than '{cue}' to build a mismatch baseline")
            return float("nan")
        counts = np.array([self.schema_score(c, tokens, num_words).count for c in others], dtype=float)
        if self.mismatch_statistic == "median":
            return float(np.median(counts))
        return float(np.mean(counts))

    # -----------------------------
    # Per-narrative records
    # -----------------------------

    def score_narrative(self, narrative: Narrative, num_words: Optional[int] = None) -> ScoreResult:
        cue = narrative.cue.lower()
        tokens = narrative.tokens
        if cue not in self.cues:
            reason = self.failed_cues.get(cue) or str(UnknownCueError(narrative.cue))
            return ScoreResult(
                narrative_id=narrative.narrative_id,
                cue=narrative.cue,
                non_stopword_word_count=len(tokens),
                schema_words_count=math.nan,
                schema_words_identified=(),
                schema_mismatch_count=math.nan,
                error=reason,
            )
        match = self.schema_score(cue, tokens, num_words)
        return ScoreResult(
            narrative_id=narrative.narrative_id,
            cue=narrative.cue,
            non_stopword_word_count=len(tokens),
            schema_words_count=match.count,
            schema_words_identified=match.matched,
            schema_mismatch_count=self.mismatch_score(cue, tokens, num_words),
        )

    def score_all(
        self,
        narratives: Sequence[Narrative],
        workers: int = 1,
        num_words: Optional[int] = None,
        progress: bool = True,
    ) -> List[ScoreResult]:
        """Score every narrative; results keep the input order."""
        def _one(nar: Narrative) -> ScoreResult:
            return self.score_narrative(nar, num_words)

        if workers <= 1:
            it = (_one(n) for n in narratives)
            return list(tqdm(it, total=len(narratives), desc="narratives", disable=not progress, leave=False))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            it = pool.map(_one, narratives)
            return list(tqdm(it, total=len(narratives), desc="narratives", disable=not progress, leave=False))


# -----------------------------
# Projection onto the input table
# -----------------------------

SCORE_COLUMNS = ["nonStopwordWordCount", "schemaWordsCount", "schemaWordsIdentified", "schemaMismatchCount"]


def scores_frame(results: Iterable[ScoreResult], id_column: str = "index") -> pd.DataFrame:
    rows = []
    for r in results:
        row = {id_column: r.narrative_id}
        row.update(r.to_row())
        row["error"] = r.error
        rows.append(row)
    return pd.DataFrame(rows, columns=[id_column] + SCORE_COLUMNS + ["error"])


def join_scores(metadata: pd.DataFrame, results: Iterable[ScoreResult], id_column: str = "index") -> pd.DataFrame:
    """Left-join score columns onto the original narrative rows, keeping their order."""
    if id_column not in metadata.columns:
        raise ValueError(f"Missing id column '{id_column}' in narrative metadata")
    scores = scores_frame(results, id_column=id_column)
    if not scores["error"].notna().any():
        scores = scores.drop(columns=["error"])
    return metadata.merge(scores, on=id_column, how="left", sort=False)
