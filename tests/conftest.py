import pytest

from schemanlp import DictionaryCache, EmbeddingStore


TOY_VECTORS = {
    "beach": [1.0, 0.0],
    "forest": [0.0, 1.0],
    "sand": [0.95, 0.1],
    "wave": [0.6, 0.6],
    "tree": [0.1, 0.95],
}

THREE_CUE_VECTORS = {
    "beach": [1.0, 0.0, 0.0],
    "forest": [0.0, 1.0, 0.0],
    "city": [0.0, 0.0, 1.0],
    "sand": [0.9, 0.1, 0.0],
    "tree": [0.1, 0.9, 0.0],
    "car": [0.0, 0.1, 0.9],
    "wave": [0.6, 0.6, 0.1],
    "street": [0.2, 0.0, 0.8],
}


@pytest.fixture
def toy_store():
    return EmbeddingStore.from_mapping(TOY_VECTORS)


@pytest.fixture
def toy_cache(toy_store):
    cache = DictionaryCache(toy_store, num_similar_words=5)
    cache.build_all(["beach", "forest"], progress=False)
    return cache.freeze()


@pytest.fixture
def three_cue_cache():
    store = EmbeddingStore.from_mapping(THREE_CUE_VECTORS)
    cache = DictionaryCache(store, num_similar_words=8)
    cache.build_all(["beach", "forest", "city"], progress=False)
    return cache.freeze()


@pytest.fixture
def glove_file(tmp_path):
    lines = [w + " " + " ".join(f"{x:.6f}" for x in vec) for w, vec in TOY_VECTORS.items()]
    path = tmp_path / "glove.txt"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path
