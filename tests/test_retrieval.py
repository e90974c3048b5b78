from __future__ import annotations

from coping_ai.config import DEFAULT_KNOWLEDGE_PATH
from coping_ai.models import KnowledgeChunk
from coping_ai.retrieval import _tokenize, load_knowledge_base, retrieve


def _corpus(*texts):
    return [KnowledgeChunk(id=f"c{i}", content=t) for i, t in enumerate(texts)]


def test_knowledge_base_loads_all_chunks():
    kb = load_knowledge_base(DEFAULT_KNOWLEDGE_PATH)
    assert len(kb) == 20
    assert kb[0].id == "cbt_intro_01"
    assert load_knowledge_base(DEFAULT_KNOWLEDGE_PATH) == kb, "Second load should come from the cache"


def test_tokenize_drops_stop_words_short_tokens_and_punctuation():
    assert _tokenize("I am at it, on the way!") == ["way"]
    assert _tokenize("Breathing!!! (shaking)") == ["breathing", "shaking"]


def test_only_stop_words_returns_nothing():
    kb = load_knowledge_base(DEFAULT_KNOWLEDGE_PATH)
    assert retrieve("I am at it on", kb) == []
    assert retrieve("", kb) == []


def test_panic_query_ranks_panic_chunks_first():
    kb = load_knowledge_base(DEFAULT_KNOWLEDGE_PATH)
    results = retrieve("panic attack heart racing sweating", kb)
    assert 0 < len(results) <= 5
    assert "panic attack" in results[0].lower()
    for text in results:
        lowered = text.lower()
        assert any(w in lowered for w in ("panic", "attack", "heart", "racing", "sweating"))


def test_top_k_and_zero_scores_are_respected():
    corpus = _corpus("worry worry", "worry about sleep", "sleep hygiene", "nothing relevant")
    assert retrieve("worry sleep", corpus, top_k=2) == ["worry about sleep", "worry worry"]
    assert "nothing relevant" not in retrieve("worry sleep", corpus, top_k=10)


def test_ties_keep_corpus_order():
    corpus = _corpus("alpha breathing", "beta breathing", "gamma breathing")
    assert retrieve("breathing", corpus) == ["alpha breathing", "beta breathing", "gamma breathing"]


def test_substring_matching_counts_each_keyword_once_per_chunk():
    corpus = _corpus("tension tension tension", "muscle tension")
    # "muscle tension" matches both keywords, the other only one
    assert retrieve("muscle tension", corpus)[0] == "muscle tension"


def test_empty_corpus():
    assert retrieve("panic", []) == []
