from __future__ import annotations
import json, re
from functools import lru_cache
from typing import List, Sequence, Tuple

from .models import KnowledgeChunk

STOP_WORDS = frozenset("""
i me my myself we our ours ourselves you your yours he him his she her it its they them their
what which who whom this that these those am is are was were be been being have has had having
do does did doing a an the and but if or because as until while of at by for with about against
between into through during before after above below to from up down in out on off over under
again further then once here there when where why how all any both each few more most other some
such no nor not only own same so than too very s t can will just don should now
""".split())

_PUNCT_RE = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()]")


def _tokenize(text: str) -> List[str]:
    cleaned = _PUNCT_RE.sub("", text.lower())
    return [w for w in cleaned.split() if len(w) > 2 and w not in STOP_WORDS]


def retrieve(query: str, corpus: Sequence[KnowledgeChunk], top_k: int = 5) -> List[str]:
    """Rank chunks by how many query keywords they contain (substring match)."""
    words = _tokenize(query)
    if not words:
        return []
    scored: List[Tuple[int, KnowledgeChunk]] = []
    for chunk in corpus:
        text = chunk.content.lower()
        scored.append((sum(1 for w in words if w in text), chunk))
    # sort is stable, so ties keep corpus order
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [chunk.content for score, chunk in scored[:top_k] if score > 0]


@lru_cache(maxsize=8)
def _load(path: str) -> Tuple[KnowledgeChunk, ...]:
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    return tuple(KnowledgeChunk(**r) for r in raw)


def load_knowledge_base(path: str) -> List[KnowledgeChunk]:
    return list(_load(path))
