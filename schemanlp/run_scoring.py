#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Schema scoring runner
Steps:
  • Read the transcript table and clean each narrative (stopwords, lemmatizer)
  • Load the word-embedding table
  • Phase 1: rank the vocabulary once per cue → schema dictionaries
  • Phase 2: schema word count + mismatch baseline for every narrative
  • Write schema_dictionaries.csv, narratives_scores.csv, cue_word_counts.csv,
    proportions_per_cue.csv and summary.json into the output directory

Usage examples:
  python -m schemanlp.run_scoring --config config/defaults.yaml
  python -m schemanlp.run_scoring --embeddings glove.6B.300d.txt --input transcriptions_all.csv --num-words 5000
"""

from __future__ import annotations

# ───────────────────────── Embedded default YAML ──────────────────────────────
CONFIG_YAML = """\
output_dir: reports
embeddings:
  path: glove.6B.300d.txt
  limit: null
input:
  path: transcriptions_all.csv
dictionary:
  num_similar_words: 50000
scoring:
  num_words_to_use: 10000
  mismatch_statistic: mean
  strict: true
workers:
  dictionaries: 1
  scoring: 1
preprocess:
  extra_stopwords: []
  stopwords_path: null
  exclude_cue_words: true
  lemmatizer: null
export:
  dictionaries: true
  word_counts: true
"""

# ───────────────────────────── Imports ────────────────────────────────────────
import argparse
import importlib
import sys
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Callable, List, Optional

import numpy as np
import yaml  # pip install pyyaml

from .dictionaries import DictionaryCache, export_dictionaries
from .embeddings import load_embeddings
from .preprocess import build_stopwords, load_stopwords, narratives_from_frame, read_narratives_csv
from .scoring import MISMATCH_STATISTICS, ScoringEngine, join_scores
from .tracing import DICTIONARIES_CSV, SCORES_CSV, SINGLETONS_CSV, WORD_COUNTS_CSV, RunOutputs
from .wordcounts import cue_word_counts, singleton_proportion, singleton_proportions_per_cue

DEFAULT_CONFIG_PATH = "config/defaults.yaml"
TAG = "[SchemaNLP]"


# ─────────────────────────── Data/config utils ────────────────────────────────

@dataclass
class RunConfig:
    output_dir: Path
    embeddings_path: Path
    input_path: Path
    embeddings_limit: Optional[int] = None
    num_similar_words: int = 50_000
    num_words_to_use: int = 10_000
    mismatch_statistic: str = "mean"
    strict: bool = True
    dictionary_workers: int = 1
    scoring_workers: int = 1
    extra_stopwords: List[str] = field(default_factory=list)
    stopwords_path: Optional[Path] = None
    exclude_cue_words: bool = True
    lemmatizer: Optional[str] = None
    export_dictionaries: bool = True
    export_word_counts: bool = True

    def validate(self) -> "RunConfig":
        if self.num_similar_words <= 0 or self.num_words_to_use <= 0:
            raise ValueError("num_similar_words and num_words_to_use must be > 0")
        if self.num_words_to_use > self.num_similar_words:
            raise ValueError(
                f"num_words_to_use ({self.num_words_to_use}) must be <= "
                f"num_similar_words ({self.num_similar_words})"
            )
        if self.mismatch_statistic not in MISMATCH_STATISTICS:
            raise ValueError(f"mismatch_statistic must be one of {MISMATCH_STATISTICS}")
        return self

    def snapshot(self) -> dict:
        return {k: (str(v) if isinstance(v, Path) else v) for k, v in asdict(self).items()}


def load_cfg_from_yaml(yaml_text: str) -> RunConfig:
    cfg = yaml.safe_load(yaml_text) or {}
    emb = cfg.get("embeddings", {})
    scoring = cfg.get("scoring", {})
    workers = cfg.get("workers", {})
    pre = cfg.get("preprocess", {})
    export = cfg.get("export", {})
    stop_path = pre.get("stopwords_path")
    return RunConfig(
        output_dir=Path(cfg.get("output_dir", "reports")),
        embeddings_path=Path(emb["path"]),
        input_path=Path(cfg["input"]["path"]),
        embeddings_limit=emb.get("limit"),
        num_similar_words=int(cfg.get("dictionary", {}).get("num_similar_words", 50_000)),
        num_words_to_use=int(scoring.get("num_words_to_use", 10_000)),
        mismatch_statistic=scoring.get("mismatch_statistic", "mean"),
        strict=bool(scoring.get("strict", True)),
        dictionary_workers=int(workers.get("dictionaries", 1)),
        scoring_workers=int(workers.get("scoring", 1)),
        extra_stopwords=list(pre.get("extra_stopwords") or []),
        stopwords_path=Path(stop_path) if stop_path else None,
        exclude_cue_words=bool(pre.get("exclude_cue_words", True)),
        lemmatizer=pre.get("lemmatizer"),
        export_dictionaries=bool(export.get("dictionaries", True)),
        export_word_counts=bool(export.get("word_counts", True)),
    ).validate()


def resolve_lemmatizer(target: Optional[str]) -> Optional[Callable[[str], str]]:
    """Import a lemmatizer given as ``module:attribute``.

    The attribute may be a callable str -> str, or a class whose instances
    expose ``lemmatize(word)`` (e.g. ``nltk.stem:WordNetLemmatizer``).
    """
    if not target:
        return None
    module_name, _, attr = target.partition(":")
    if not attr:
        raise ValueError(f"lemmatizer must look like 'module:attribute', got {target!r}")
    obj = getattr(importlib.import_module(module_name), attr)
    if isinstance(obj, type) and hasattr(obj, "lemmatize"):
        obj = obj().lemmatize
    if not callable(obj):
        raise ValueError(f"lemmatizer {target!r} is not callable")
    return obj


# ───────────────────────────── Pipeline ───────────────────────────────────────

def run(cfg: RunConfig, progress: bool = True) -> int:
    out = RunOutputs(cfg.output_dir)
    summary = {"config": cfg.snapshot()}

    try:
        story = read_narratives_csv(cfg.input_path)
    except (FileNotFoundError, ValueError) as e:
        print(f"{TAG} Cannot read narratives: {e}")
        return 1

    cues = list(dict.fromkeys(c.lower() for c in story["Cue"]))
    extra = list(cfg.extra_stopwords)
    if cfg.stopwords_path is not None:
        extra += load_stopwords(cfg.stopwords_path)
    stopwords = build_stopwords(cues=story["Cue"].unique() if cfg.exclude_cue_words else (), extra=extra)
    narratives = narratives_from_frame(story, stopwords, resolve_lemmatizer(cfg.lemmatizer))
    print(f"{TAG} {len(narratives)} narratives, {len(cues)} cues, {len(stopwords)} stopwords")

    try:
        vocab = load_embeddings(cfg.embeddings_path, limit=cfg.embeddings_limit)
    except (FileNotFoundError, ValueError) as e:
        print(f"{TAG} Cannot load embeddings: {e}")
        return 1
    print(f"{TAG} Vocabulary: {vocab.size()} words × {vocab.dimension()} dims")

    # Phase 1: dictionaries for every cue
    cache = DictionaryCache(vocab, cfg.num_similar_words)
    report = cache.build_all(cues, workers=cfg.dictionary_workers, progress=progress)
    cache.freeze()
    summary["dictionaries"] = report.to_dict()
    for cue, err in report.failed.items():
        print(f"{TAG}[Phase1] Failed cue '{cue}': {err}")
    if report.failed and cfg.strict:
        print(f"{TAG}[Phase1] {len(report.failed)} cue(s) failed; choose other cue words and rerun "
              "(or set scoring.strict: false to score the remaining cues)")
        out.finalize(summary)
        return 2

    if cfg.export_dictionaries:
        path = export_dictionaries(cache, out.path(DICTIONARIES_CSV))
        print(f"{TAG}[Phase1] Dictionaries → {path}")

    # Phase 2: per-narrative scores
    engine = ScoringEngine(
        cache,
        cues=report.built,
        num_words=cfg.num_words_to_use,
        mismatch_statistic=cfg.mismatch_statistic,
        failed_cues=report.failed,
    )
    results = engine.score_all(narratives, workers=cfg.scoring_workers, progress=progress)
    scores = join_scores(story, results)
    scores_path = out.write_frame(scores, SCORES_CSV)
    print(f"{TAG}[Phase2] Scores → {scores_path}")

    if cfg.export_word_counts:
        out.write_frame(cue_word_counts(narratives), WORD_COUNTS_CSV)
        out.write_frame(singleton_proportions_per_cue(narratives), SINGLETONS_CSV)

    schema_counts = np.array([r.schema_words_count for r in results], dtype=float)
    mismatch_counts = np.array([r.schema_mismatch_count for r in results], dtype=float)
    summary["scores"] = {
        "n_narratives": len(results),
        "n_errors": sum(1 for r in results if r.error),
        "schema_words_mean": float(np.nanmean(schema_counts)) if np.isfinite(schema_counts).any() else float("nan"),
        "mismatch_mean": float(np.nanmean(mismatch_counts)) if np.isfinite(mismatch_counts).any() else float("nan"),
        "singleton_proportion": singleton_proportion(narratives),
    }
    summary_path = out.finalize(summary)
    print(f"{TAG} Wrote:")
    print("  ", scores_path)
    print("  ", summary_path)
    return 0


# ─────────────────────────── CLI entry point ──────────────────────────────────

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Score narratives for schema-typical words")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help=f"Path to YAML config (default: {DEFAULT_CONFIG_PATH}, else embedded defaults)",
    )
    parser.add_argument("--embeddings", type=str, default=None, help="Override embeddings path (GloVe .txt or .npz)")
    parser.add_argument("--input", type=str, default=None, help="Override narratives CSV path")
    parser.add_argument("--output-dir", type=str, default=None, help="Override output directory")
    parser.add_argument("--num-similar-words", type=int, default=None, help="Dictionary build size per cue")
    parser.add_argument("--num-words", type=int, default=None, help="Dictionary words used for scoring")
    parser.add_argument("--mismatch-statistic", choices=MISMATCH_STATISTICS, default=None)
    parser.add_argument("--workers", type=int, default=None, help="Thread pool size for both phases")
    parser.add_argument("--no-strict", action="store_true", help="Score remaining cues when some cues fail")
    parser.add_argument("--quiet", action="store_true", help="Disable progress bars")
    args = parser.parse_args(argv)

    # Config loading logic
    config_path = Path(args.config or DEFAULT_CONFIG_PATH)
    if config_path.exists():
        cfg_text = config_path.read_text()
    elif args.config:
        print(f"{TAG} Config not found: {config_path}")
        return 1
    else:
        cfg_text = CONFIG_YAML

    try:
        cfg = load_cfg_from_yaml(cfg_text)
        # CLI overrides
        if args.embeddings is not None:
            cfg.embeddings_path = Path(args.embeddings)
        if args.input is not None:
            cfg.input_path = Path(args.input)
        if args.output_dir is not None:
            cfg.output_dir = Path(args.output_dir)
        if args.num_similar_words is not None:
            cfg.num_similar_words = args.num_similar_words
        if args.num_words is not None:
            cfg.num_words_to_use = args.num_words
        if args.mismatch_statistic is not None:
            cfg.mismatch_statistic = args.mismatch_statistic
        if args.workers is not None:
            cfg.dictionary_workers = cfg.scoring_workers = args.workers
        if args.no_strict:
            cfg.strict = False
        cfg.validate()
    except (KeyError, ValueError) as e:
        print(f"{TAG} Invalid config: {e}")
        return 1

    return run(cfg, progress=not args.quiet)


if __name__ == "__main__":
    sys.exit(main())
