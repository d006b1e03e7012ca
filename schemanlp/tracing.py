from __future__ import annotations
import json
import math
from pathlib import Path
from datetime import datetime, timezone
from typing import Dict, Any, Optional

import pandas as pd

DICTIONARIES_CSV = "schema_dictionaries.csv"
SCORES_CSV = "narratives_scores.csv"
WORD_COUNTS_CSV = "cue_word_counts.csv"
SINGLETONS_CSV = "proportions_per_cue.csv"
SUMMARY_JSON = "summary.json"


class RunOutputs:
    """Owns the output directory of one scoring run."""

    def __init__(self, outdir: str | Path):
        """
        Args:
            outdir (str | Path): Directory to store exports and the run summary.
        """
        self.outdir = Path(outdir)
        self.outdir.mkdir(parents=True, exist_ok=True)

    def path(self, name: str) -> Path:
        return self.outdir / name

    def write_frame(self, df: pd.DataFrame, name: str, index: bool = False) -> Path:
        """
        Write a DataFrame as CSV, replacing any previous file atomically.

        Args:
            df (pd.DataFrame): Table to write.
            name (str): File name inside the output directory.
            index (bool): Whether to write the DataFrame index.

        Returns:
            Path: The written file.
        """
        path = self.path(name)
        tmp = path.with_name(path.name + ".tmp")
        df.to_csv(tmp, index=index)
        tmp.replace(path)
        return path

    def finalize(self, summary: Dict[str, Any]) -> Path:
        """
        Write the run summary JSON.

        Args:
            summary (Dict[str, Any]): Summary dictionary to save.
        """
        path = self.path(SUMMARY_JSON)
        save_summary(summary, path)
        return path


def _jsonable(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    if hasattr(value, "item"):  # numpy scalars
        return _jsonable(value.item())
    return value


def save_summary(summary: Dict[str, Any], path: str | Path) -> None:
    """
    Save the summary dictionary as a pretty JSON file with a timestamp.
    NaN values are written as null.

    Args:
        summary (Dict[str, Any]): Summary data to save.
        path (str | Path): Path to the summary JSON file.
    """
    summary_copy = _jsonable(dict(summary))
    summary_copy["_saved_at"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    path = Path(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(summary_copy, f, indent=2, sort_keys=True)


def load_summary(path: str | Path) -> Optional[Dict[str, Any]]:
    path = Path(path)
    if not path.exists():
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
