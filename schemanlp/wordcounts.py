"""
Corpus word counts
------------------
Descriptives over the cleaned narratives: which words each cue elicits and
how much of the corpus is made of words that occur only once.
"""
from __future__ import annotations

from typing import Dict, Iterable

import pandas as pd

from .types import Narrative

__all__ = ["tokens_frame", "cue_word_counts", "singleton_proportion", "singleton_proportions_per_cue"]


def tokens_frame(narratives: Iterable[Narrative]) -> pd.DataFrame:
    """One row per cleaned token: (narrative_id, Cue, word)."""
    rows = [(n.narrative_id, n.cue, tok) for n in narratives for tok in n.tokens]
    return pd.DataFrame(rows, columns=["narrative_id", "Cue", "word"])


def cue_word_counts(narratives: Iterable[Narrative], min_count: int = 1) -> pd.DataFrame:
    """Token counts per (Cue, word), sorted by cue then descending count."""
    df = tokens_frame(narratives)
    if df.empty:
        return pd.DataFrame(columns=["Cue", "word", "count"])
    out = df.groupby(["Cue", "word"]).size().reset_index(name="count")
    out = out[out["count"] >= min_count]
    return out.sort_values(["Cue", "count", "word"], ascending=[True, False, True]).reset_index(drop=True)


def singleton_proportion(narratives: Iterable[Narrative]) -> float:
    """Share of all tokens whose word appears exactly once in the corpus."""
    df = tokens_frame(narratives)
    if df.empty:
        return float("nan")
    counts = df["word"].value_counts()
    once = counts[counts == 1]
    return float(len(once) / len(df))


def singleton_proportions_per_cue(narratives: Iterable[Narrative]) -> pd.DataFrame:
    """Per cue: total tokens, words occurring once, and their share of tokens."""
    counts = cue_word_counts(narratives)
    if counts.empty:
        return pd.DataFrame(columns=["Cue", "total_tokens", "tokens_occurring_once", "proportion_occurring_once"])
    rows: Dict[str, Dict[str, float]] = {}
    for cue, grp in counts.groupby("Cue", sort=True):
        total = int(grp["count"].sum())
        once = int((grp["count"] == 1).sum())
        rows[cue] = {
            "total_tokens": total,
            "tokens_occurring_once": once,
            "proportion_occurring_once": once / total,
        }
    return pd.DataFrame.from_dict(rows, orient="index").rename_axis("Cue").reset_index()
