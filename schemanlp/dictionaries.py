"""
Dictionary Cache
----------------
Per-cue memo of ranked vocabularies, capped at `num_similar_words`.

Building is the expensive step (O(V·D) per cue) so each cue is ranked at most
once; every smaller working size is a slice of the cached ranking. Building
across cues is independent and can run on a thread pool (numpy releases the
GIL inside the matrix product). Once `freeze()` is called the cache refuses
new builds, which is what the ScoringEngine requires before Phase 2.
"""
from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pandas as pd
from tqdm import tqdm

from .embeddings import EmbeddingStore
from .similarity import rank_cue
from .types import BuildReport, SchemaNLPError, SimilarityDictionary, UnknownCueError

__all__ = [
    "DEFAULT_NUM_SIMILAR_WORDS",
    "DictionaryCache",
    "truncate",
    "dictionaries_frame",
    "export_dictionaries",
]

DEFAULT_NUM_SIMILAR_WORDS = 50_000


def truncate(dictionary: SimilarityDictionary, n: int) -> SimilarityDictionary:
    return dictionary.truncate(n)


class DictionaryCache:
    """Write-once-per-cue store of SimilarityDictionary objects."""

    def __init__(self, vocabulary: EmbeddingStore, num_similar_words: int = DEFAULT_NUM_SIMILAR_WORDS):
        if num_similar_words <= 0:
            raise ValueError("num_similar_words must be > 0")
        self.vocabulary = vocabulary
        self.num_similar_words = int(num_similar_words)
        self._entries: Dict[str, SimilarityDictionary] = {}
        # cues in first-requested order; exports follow it, not completion order
        self._order: Dict[str, None] = {}
        self._lock = threading.Lock()
        self._frozen = False

    # --- Phase 1 ---

    def build(self, cue: str) -> SimilarityDictionary:
        """Return the cached dictionary for `cue`, ranking it on first use."""
        key = cue.lower()
        cached = self._entries.get(key)
        if cached is not None:
            return cached
        if self._frozen:
            raise SchemaNLPError(f"dictionary cache is frozen; cue '{cue}' was never built")
        if cue not in self.vocabulary:
            raise UnknownCueError(cue)
        self._reserve([key])
        built = rank_cue(key, self.vocabulary, self.num_similar_words)
        with self._lock:
            # another worker may have finished the same cue first
            return self._entries.setdefault(key, built)

    def _reserve(self, keys: Iterable[str]) -> None:
        with self._lock:
            for key in keys:
                self._order.setdefault(key)

    def build_all(self, cues: Iterable[str], workers: int = 1, progress: bool = True) -> BuildReport:
        """Build every cue, isolating failures per cue.

        A cue that raises is recorded in `report.failed` with its message;
        the remaining cues are still built.
        """
        unique: List[str] = list(dict.fromkeys(c.lower() for c in cues))
        self._reserve(unique)
        report = BuildReport()
        bar = tqdm(total=len(unique), desc="dictionaries", disable=not progress, leave=False)

        def _one(cue: str) -> Optional[str]:
            try:
                self.build(cue)
                return None
            except UnknownCueError as e:
                return str(e)

        outcomes: Dict[str, Optional[str]] = {}
        try:
            if workers <= 1:
                for cue in unique:
                    outcomes[cue] = _one(cue)
                    bar.update(1)
            else:
                with ThreadPoolExecutor(max_workers=workers) as pool:
                    futures = {pool.submit(_one, cue): cue for cue in unique}
                    for fut in as_completed(futures):
                        outcomes[futures[fut]] = fut.result()
                        bar.update(1)
        finally:
            bar.close()

        for cue in unique:
            err = outcomes[cue]
            if err is None:
                report.built.append(cue)
            else:
                report.failed[cue] = err
        return report

    def freeze(self) -> "DictionaryCache":
        self._frozen = True
        return self

    # --- read access ---

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def cues(self) -> List[str]:
        """Built cues in the order they were first requested."""
        return [c for c in self._order if c in self._entries]

    def __contains__(self, cue: object) -> bool:
        return isinstance(cue, str) and cue.lower() in self._entries

    def get(self, cue: str) -> SimilarityDictionary:
        try:
            return self._entries[cue.lower()]
        except KeyError:
            raise UnknownCueError(cue) from None

    def truncate(self, cue: str, n: int) -> SimilarityDictionary:
        return self.get(cue).truncate(n)


# -----------------------------
# Export
# -----------------------------

def dictionaries_frame(cache: DictionaryCache, n: Optional[int] = None) -> pd.DataFrame:
    """One column per cue holding its ranked words (padded with NaN if ragged)."""
    cols = {}
    for cue in cache.cues:
        d = cache.get(cue) if n is None else cache.truncate(cue, n)
        cols[cue] = pd.Series(d.words, dtype=object)
    return pd.DataFrame(cols)


def export_dictionaries(cache: DictionaryCache, path: str | Path, n: Optional[int] = None) -> Path:
    """Write the per-cue word lists for manual inspection."""
    if not cache.frozen:
        raise SchemaNLPError("refusing to export dictionaries before the build phase has finished")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    dictionaries_frame(cache, n).to_csv(path, index=False)
    return path
