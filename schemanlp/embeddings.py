"""
Embedding Store
---------------
Read-only word -> vector table backing the similarity ranker.

Two on-disk formats are accepted:
  • GloVe text: one ``word v1 v2 ... vD`` row per line (optionally a
    word2vec-style ``V D`` header line, which is skipped). The word may
    itself contain spaces; the vector is the last D fields of the row.
  • ``.npz`` archives with a ``words`` array (V,) and a ``vectors`` array (V, D).

Words are lower-cased on load; when two rows collapse onto the same
lower-cased word the first one wins, so the vocabulary index (used as the
ranking tie-break) follows file order.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from tqdm import tqdm

from .types import UnknownWordError

__all__ = ["EmbeddingStore", "load_embeddings"]


class EmbeddingStore:
    """Immutable vocabulary table. Vector norms are precomputed once.

    With ``copy=False`` a float64 array is adopted as-is (and made
    read-only); loaders use it for arrays they have just built.
    """

    def __init__(self, words: Sequence[str], vectors: np.ndarray, copy: bool = True):
        owned = np.asarray(vectors, dtype=np.float64)
        if copy and owned is vectors:
            owned = owned.copy()
        vectors = owned
        if vectors.ndim != 2:
            raise ValueError(f"vectors must be 2D, got shape {vectors.shape}")
        if len(words) != vectors.shape[0]:
            raise ValueError(f"{len(words)} words but {vectors.shape[0]} vectors")

        index: Dict[str, int] = {}
        keep: List[int] = []
        for i, w in enumerate(words):
            key = str(w).lower()
            if key in index:
                continue
            index[key] = len(keep)
            keep.append(i)
        if len(keep) != vectors.shape[0]:
            vectors = vectors[keep]

        self._words: Tuple[str, ...] = tuple(index.keys())
        self._index = index
        self._vectors = vectors
        self._vectors.setflags(write=False)
        self._norms = np.linalg.norm(vectors, axis=1)
        self._norms.setflags(write=False)

    @classmethod
    def from_mapping(cls, table: Mapping[str, Iterable[float]]) -> "EmbeddingStore":
        words = list(table.keys())
        return cls(words, np.array([list(table[w]) for w in words], dtype=np.float64), copy=False)

    # --- queries ---

    def vector(self, word: str) -> np.ndarray:
        i = self._index.get(word.lower())
        if i is None:
            raise UnknownWordError(word)
        return self._vectors[i]

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and word.lower() in self._index

    def dimension(self) -> int:
        return int(self._vectors.shape[1])

    def size(self) -> int:
        return int(self._vectors.shape[0])

    def __len__(self) -> int:
        return self.size()

    @property
    def words(self) -> Tuple[str, ...]:
        return self._words

    @property
    def matrix(self) -> np.ndarray:
        return self._vectors

    @property
    def norms(self) -> np.ndarray:
        return self._norms


# -----------------------------
# Loaders
# -----------------------------

def _read_glove_text(path: Path, limit: Optional[int]) -> Tuple[List[str], np.ndarray]:
    words: List[str] = []
    rows: List[np.ndarray] = []
    dim: Optional[int] = None
    with path.open("r", encoding="utf-8", errors="replace") as f:
        for lineno, line in enumerate(tqdm(f, desc="embeddings", unit=" rows", leave=False), start=1):
            line = line.rstrip()
            if dim is None:
                parts = line.split(" ")
                if lineno == 1 and len(parts) == 2 and all(p.isdigit() for p in parts):
                    continue  # word2vec header
            else:
                # some GloVe tokens contain spaces (". . ."); values are the last `dim` fields
                parts = line.rsplit(" ", dim)
            if len(parts) < 2:
                continue
            try:
                vals = np.asarray(parts[1:], dtype=np.float64)
            except ValueError:
                raise ValueError(f"{path}:{lineno}: non-numeric vector values") from None
            if dim is None:
                dim = vals.shape[0]
            elif vals.shape[0] != dim:
                raise ValueError(f"{path}:{lineno}: expected {dim} values, got {vals.shape[0]}")
            words.append(parts[0])
            rows.append(vals)
            if limit is not None and len(words) >= limit:
                break
    if not rows:
        raise ValueError(f"No embedding rows found in {path}")
    return words, np.vstack(rows)


def load_embeddings(path: str | Path, limit: Optional[int] = None) -> EmbeddingStore:
    """Load a GloVe text file or an ``.npz`` archive into an EmbeddingStore."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Embedding file not found: {path}")
    if path.suffix == ".npz":
        with np.load(path, allow_pickle=False) as data:
            missing = {"words", "vectors"} - set(data.files)
            if missing:
                raise ValueError(f"Missing arrays {missing} in {path}")
            words = [str(w) for w in data["words"]]
            vectors = data["vectors"]
        if limit is not None:
            words, vectors = words[:limit], vectors[:limit]
        return EmbeddingStore(words, vectors, copy=False)
    words, vectors = _read_glove_text(path, limit)
    return EmbeddingStore(words, vectors, copy=False)
