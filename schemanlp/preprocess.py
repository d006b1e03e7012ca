"""
Narrative preprocessing
-----------------------
Turns the transcript table (Subject, Trial, Cue, Transcript) into cleaned
token sequences: lower-case word tokens, stopwords removed, then an optional
lemmatizer applied. The stopword list and the lemmatizer are supplied by the
caller; this module only applies them.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Set, Tuple

import pandas as pd

from .types import Narrative

__all__ = [
    "REQUIRED_COLUMNS",
    "FILLER_STOPWORDS",
    "read_narratives_csv",
    "tokenize",
    "build_stopwords",
    "load_stopwords",
    "clean_tokens",
    "narrative_triples",
    "group_triples",
    "narratives_from_frame",
]

REQUIRED_COLUMNS = ("Subject", "Trial", "Cue", "Transcript")

# Conversational filler and perception verbs that every cue prompt elicits.
FILLER_STOPWORDS = (
    "like", "just", "can", "people", "around", "yeah", "see", "uh", "really", "um",
    "kind", "one", "lot", "it's", "i'm", "nice", "there's", "get", "time", "also",
    "know", "hear", "smell", "touch",
)

# letters and digits in any script; inner apostrophes join ("it's")
_TOKEN_RE = re.compile(r"[^\W_]+(?:'[^\W_]+)*")


def read_narratives_csv(path: str | Path) -> pd.DataFrame:
    """Read the transcript table and add a 1-based `index` column."""
    df = pd.read_csv(path)
    missing = set(REQUIRED_COLUMNS) - set(df.columns)
    if missing:
        raise ValueError(f"Missing required columns {sorted(missing)} in {path}")
    df = df.copy()
    df["Trial"] = df["Trial"].astype(int)
    df["Cue"] = df["Cue"].astype(str)
    df["Transcript"] = df["Transcript"].fillna("").astype(str)
    df["index"] = range(1, len(df) + 1)
    return df


def tokenize(text: str) -> List[str]:
    """Lower-case word tokens; apostrophes inside words are kept ("it's")."""
    text = (text or "").lower().replace("’", "'")
    return _TOKEN_RE.findall(text)


def load_stopwords(path: str | Path) -> List[str]:
    """One stopword per line; blank lines and '#' comments are ignored."""
    out: List[str] = []
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        w = line.strip()
        if w and not w.startswith("#"):
            out.append(w.lower())
    return out


def build_stopwords(
    cues: Iterable[str] = (),
    extra: Iterable[str] = (),
    include_fillers: bool = True,
) -> Set[str]:
    """Stopword set: fillers + extra words + cue names (raw and lower-cased).

    General English function words are not included; pass them via `extra`
    (the runner reads `preprocess.stopwords_path`).

    Cue names are stopwords so a narrative's own cue word never counts as a
    schema word, even though it ranks first in its own dictionary.
    """
    words: Set[str] = set(FILLER_STOPWORDS) if include_fillers else set()
    words.update(w.lower() for w in extra)
    for c in cues:
        words.add(c)
        words.add(c.lower())
    return words


def clean_tokens(
    text: str,
    stopwords: Set[str],
    lemmatize: Optional[Callable[[str], str]] = None,
) -> Tuple[str, ...]:
    """Tokenize, drop stopwords, then lemmatize what remains."""
    toks = [t for t in tokenize(text) if t not in stopwords]
    if lemmatize is not None:
        toks = [lemmatize(t) for t in toks]
    return tuple(toks)


def narrative_triples(
    df: pd.DataFrame,
    stopwords: Set[str],
    lemmatize: Optional[Callable[[str], str]] = None,
    id_column: str = "index",
) -> Iterable[Tuple[Hashable, str, str]]:
    """Yield (narrative_id, cue, token) in table order."""
    for nid, cue, text in zip(df[id_column], df["Cue"], df["Transcript"]):
        for tok in clean_tokens(text, stopwords, lemmatize):
            yield nid, str(cue).lower(), tok


def group_triples(
    triples: Iterable[Tuple[Hashable, str, str]],
    order: Optional[Sequence[Tuple[Hashable, str]]] = None,
) -> List[Narrative]:
    """Group (id, cue, token) triples into Narratives.

    `order` lists (id, cue) pairs in the desired output order and lets
    narratives without any surviving token appear with an empty token
    sequence; without it, narratives follow first appearance.
    """
    tokens: Dict[Hashable, List[str]] = {}
    cues: Dict[Hashable, str] = {}
    for nid, cue, tok in triples:
        if nid in cues and cues[nid] != cue:
            raise ValueError(f"narrative {nid!r} is tagged with two cues: {cues[nid]!r} and {cue!r}")
        cues.setdefault(nid, cue)
        tokens.setdefault(nid, []).append(tok)
    if order is None:
        return [Narrative(nid, cues[nid], tuple(tokens[nid])) for nid in cues]
    return [Narrative(nid, cue, tuple(tokens.get(nid, ()))) for nid, cue in order]


def narratives_from_frame(
    df: pd.DataFrame,
    stopwords: Set[str],
    lemmatize: Optional[Callable[[str], str]] = None,
    id_column: str = "index",
) -> List[Narrative]:
    order = [(nid, str(cue).lower()) for nid, cue in zip(df[id_column], df["Cue"])]
    return group_triples(narrative_triples(df, stopwords, lemmatize, id_column), order=order)
