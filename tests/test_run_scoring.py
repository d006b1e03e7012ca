import json
from pathlib import Path

import pandas as pd
import pytest

from schemanlp.run_scoring import CONFIG_YAML, load_cfg_from_yaml, main, resolve_lemmatizer


@pytest.fixture
def transcripts(tmp_path):
    path = tmp_path / "transcriptions_all.csv"
    pd.DataFrame({
        "Subject": [1, 1, 2],
        "Trial": [1, 2, 1],
        "Cue": ["Beach", "forest", "beach"],
        "Transcript": [
            "Um, the sand and the wave, a tree, more sand.",
            "Tall tree by the forest",
            "",
        ],
    }).to_csv(path, index=False)
    return path


def _args(glove_file, transcripts, out, *extra):
    return [
        "--config", str(_write_config(out.parent)),
        "--embeddings", str(glove_file),
        "--input", str(transcripts),
        "--output-dir", str(out),
        "--quiet",
        *extra,
    ]


def _write_config(dirpath):
    path = dirpath / "cfg.yaml"
    path.write_text(
        CONFIG_YAML.replace("num_similar_words: 50000", "num_similar_words: 5")
        .replace("num_words_to_use: 10000", "num_words_to_use: 3")
        .replace("extra_stopwords: []", "extra_stopwords: [the, and, a, more, by, tall]"),
        encoding="utf-8",
    )
    return path


def test_defaults_parse():
    cfg = load_cfg_from_yaml(CONFIG_YAML)
    assert cfg.num_similar_words == 50_000
    assert cfg.num_words_to_use == 10_000
    assert cfg.strict is True


def test_shipped_config_matches_embedded_defaults():
    shipped = Path(__file__).resolve().parent.parent / "config" / "defaults.yaml"
    text = shipped.read_text(encoding="utf-8")
    assert "stopwords_path" in text
    assert load_cfg_from_yaml(text).snapshot() == load_cfg_from_yaml(CONFIG_YAML).snapshot()


def test_num_words_larger_than_build_size_rejected():
    with pytest.raises(ValueError):
        load_cfg_from_yaml(CONFIG_YAML.replace("num_words_to_use: 10000", "num_words_to_use: 60000"))


def test_resolve_lemmatizer():
    assert resolve_lemmatizer(None) is None
    assert resolve_lemmatizer("builtins:str")("x") == "x"
    with pytest.raises(ValueError):
        resolve_lemmatizer("builtins")


def test_end_to_end(glove_file, transcripts, tmp_path):
    out = tmp_path / "reports"
    assert main(_args(glove_file, transcripts, out)) == 0

    scores = pd.read_csv(out / "narratives_scores.csv")
    assert scores["index"].tolist() == [1, 2, 3]
    first = scores.iloc[0]
    assert first["nonStopwordWordCount"] == 4
    assert first["schemaWordsCount"] == 3
    assert first["schemaWordsIdentified"] == "sand wave sand"
    assert first["schemaMismatchCount"] == 2.0
    assert scores["schemaWordsCount"].tolist()[2] == 0

    dicts = pd.read_csv(out / "schema_dictionaries.csv")
    assert list(dicts.columns) == ["beach", "forest"]
    assert dicts["beach"].tolist()[:3] == ["beach", "sand", "wave"]

    summary = json.loads((out / "summary.json").read_text())
    assert summary["dictionaries"]["failed"] == {}
    assert summary["scores"]["n_narratives"] == 3
    assert (out / "cue_word_counts.csv").exists()


def test_unknown_cue_aborts_in_strict_mode(glove_file, transcripts, tmp_path, capsys):
    df = pd.read_csv(transcripts)
    df.loc[1, "Cue"] = "volcano"
    df.to_csv(transcripts, index=False)
    out = tmp_path / "reports"

    assert main(_args(glove_file, transcripts, out)) == 2
    assert "volcano" in capsys.readouterr().out
    assert not (out / "schema_dictionaries.csv").exists()
    assert not (out / "narratives_scores.csv").exists()

    assert main(_args(glove_file, transcripts, out, "--no-strict")) == 0
    scores = pd.read_csv(out / "narratives_scores.csv")
    assert pd.isna(scores.loc[1, "schemaWordsCount"])
    assert "volcano" in scores.loc[1, "error"]
    # only one cue left, so the baseline is undefined rather than zero
    assert pd.isna(scores.loc[0, "schemaMismatchCount"])


def test_missing_input_returns_1(glove_file, tmp_path):
    out = tmp_path / "reports"
    assert main(_args(glove_file, tmp_path / "missing.csv", out)) == 1
