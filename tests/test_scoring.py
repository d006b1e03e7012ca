import math

import pandas as pd
import pytest

from schemanlp import (
    DictionaryCache,
    EmptyCorpusOfOtherCuesError,
    IncompleteDictionaryCacheError,
    Narrative,
    ScoringEngine,
    join_scores,
    scores_frame,
)

TOKENS = ("sand", "wave", "tree", "sand")


@pytest.fixture
def engine(toy_cache):
    return ScoringEngine(toy_cache, cues=["beach", "forest"], num_words=3)


def test_schema_score_counts_repeats(engine):
    match = engine.schema_score("beach", ["sand", "sand", "wave", "tree"])
    assert match.count == 3
    assert match.matched == ("sand", "sand", "wave")


def test_beach_and_forest_scenario(engine):
    beach = engine.schema_score("beach", TOKENS, 3)
    assert (beach.count, beach.matched) == (3, ("sand", "wave", "sand"))
    forest = engine.schema_score("forest", TOKENS, 3)
    assert (forest.count, forest.matched) == (2, ("wave", "tree"))
    assert engine.mismatch_score("beach", TOKENS, 3) == 2.0


def test_empty_narrative(engine):
    match = engine.schema_score("forest", [], 3)
    assert match.count == 0 and match.matched == ()
    assert engine.mismatch_score("beach", [], 3) == 0.0


def test_num_words_caps_dictionary(engine):
    assert engine.schema_score("beach", TOKENS, 2).matched == ("sand", "sand")
    assert engine.schema_score("beach", TOKENS, 1).count == 0


def test_cue_word_matches_its_own_dictionary(engine):
    # the cue is not removed from its dictionary; stopword filtering upstream keeps it out of narratives
    assert engine.schema_score("beach", ["beach"], 3).count == 1


def test_mismatch_is_mean_over_other_cues(three_cue_cache):
    engine = ScoringEngine(three_cue_cache, cues=["beach", "forest", "city"], num_words=3)
    tokens = ["sand", "tree", "car", "street", "wave", "tree"]
    b = engine.schema_score("forest", tokens).count
    c = engine.schema_score("city", tokens).count
    assert engine.mismatch_score("beach", tokens) == pytest.approx((b + c) / 2)
    assert engine.other_cues("beach") == ("forest", "city")


def test_mismatch_median(three_cue_cache):
    engine = ScoringEngine(three_cue_cache, cues=["beach", "forest", "city"], num_words=3, mismatch_statistic="median")
    tokens = ["tree", "tree", "car"]
    counts = sorted(engine.schema_score(c, tokens).count for c in ("forest", "city"))
    assert engine.mismatch_score("beach", tokens) == pytest.approx(sum(counts) / 2)


def test_single_cue_mismatch_is_nan(toy_store):
    cache = DictionaryCache(toy_store, num_similar_words=3)
    cache.build_all(["beach"], progress=False)
    engine = ScoringEngine(cache.freeze(), cues=["beach"], num_words=3)
    assert math.isnan(engine.mismatch_score("beach", ["sand"]))
    with pytest.raises(EmptyCorpusOfOtherCuesError):
        engine.mismatch_score("beach", ["sand"], strict=True)


def test_engine_requires_frozen_complete_cache(toy_store):
    cache = DictionaryCache(toy_store, num_similar_words=3)
    cache.build("beach")
    with pytest.raises(IncompleteDictionaryCacheError):
        ScoringEngine(cache, cues=["beach"], num_words=3)
    cache.freeze()
    with pytest.raises(IncompleteDictionaryCacheError):
        ScoringEngine(cache, cues=["beach", "forest"], num_words=3)


def test_num_words_cannot_exceed_build_size(toy_cache):
    with pytest.raises(ValueError):
        ScoringEngine(toy_cache, cues=["beach"], num_words=6)


def test_score_all_keeps_input_order(engine):
    narratives = [
        Narrative(3, "forest", ("tree", "tree")),
        Narrative(1, "beach", TOKENS),
        Narrative(2, "beach", ()),
    ]
    for workers in (1, 3):
        results = engine.score_all(narratives, workers=workers, progress=False)
        assert [r.narrative_id for r in results] == [3, 1, 2]
    r = results[1]
    assert r.non_stopword_word_count == 4
    assert r.schema_words_count == 3
    assert r.schema_mismatch_count == 2.0
    assert r.error is None


def test_failed_cue_narratives_are_flagged_not_zeroed(toy_cache):
    engine = ScoringEngine(toy_cache, cues=["beach", "forest"], num_words=3,
                           failed_cues={"volcano": "cue 'volcano' is not in the embedding vocabulary"})
    r = engine.score_narrative(Narrative(7, "volcano", ("sand",)))
    assert math.isnan(r.schema_words_count)
    assert math.isnan(r.schema_mismatch_count)
    assert "volcano" in r.error


def test_join_scores_projects_onto_metadata(engine):
    meta = pd.DataFrame({"Subject": [10, 11], "Trial": [1, 2], "Cue": ["Beach", "forest"], "index": [1, 2]})
    results = engine.score_all([Narrative(1, "beach", TOKENS), Narrative(2, "forest", ("wave",))], progress=False)
    out = join_scores(meta, results)
    assert list(out.columns) == [
        "Subject", "Trial", "Cue", "index",
        "nonStopwordWordCount", "schemaWordsCount", "schemaWordsIdentified", "schemaMismatchCount",
    ]
    assert out.loc[0, "schemaWordsIdentified"] == "sand wave sand"
    assert out.loc[1, "schemaWordsCount"] == 1
    assert out.loc[1, "schemaMismatchCount"] == 1.0


def test_scores_frame_keeps_error_column(engine):
    df = scores_frame(engine.score_all([Narrative(1, "beach", TOKENS)], progress=False))
    assert "error" in df.columns
    assert df["error"].isna().all()
