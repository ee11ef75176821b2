"""
Relevance scorers for semantic selection.

Ranking is pluggable: anything with ``score(query, text) -> float`` works.
Two implementations ship here: a lexical overlap scorer that needs no model,
and a cosine scorer over caller-supplied embeddings.
"""

import math
import re
from typing import Callable, Protocol, Sequence, runtime_checkable

_WORD = re.compile(r"\w+", re.UNICODE)


@runtime_checkable
class RelevanceScorer(Protocol):
    def score(self, query: str, text: str) -> float: ...


class LexicalScorer:
    """Jaccard overlap of lowercase word sets."""

    def __init__(self, min_word_length: int = 3):
        self.min_word_length = min_word_length

    def _words(self, text: str) -> set[str]:
        return {w for w in _WORD.findall(text.lower()) if len(w) >= self.min_word_length}

    def score(self, query: str, text: str) -> float:
        q, t = self._words(query), self._words(text)
        if not q or not t:
            return 0.0
        return len(q & t) / len(q | t)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b):
        raise ValueError(f"Embedding dimensions differ: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return dot / norm


class EmbeddingScorer:
    """
    Cosine similarity over embeddings from ``embed_fn``.

    ``embed_fn`` must be synchronous and deterministic; vectors are cached
    per text so a context build embeds each message once.
    """

    def __init__(self, embed_fn: Callable[[str], Sequence[float]], cache_size: int = 4096):
        self.embed_fn = embed_fn
        self.cache_size = cache_size
        self._cache: dict[str, Sequence[float]] = {}

    def _embed(self, text: str) -> Sequence[float]:
        vector = self._cache.get(text)
        if vector is None:
            vector = self.embed_fn(text)
            if len(self._cache) >= self.cache_size:
                self._cache.pop(next(iter(self._cache)))
            self._cache[text] = vector
        return vector

    def score(self, query: str, text: str) -> float:
        if not query or not text:
            return 0.0
        return cosine_similarity(self._embed(query), self._embed(text))


__all__ = ["EmbeddingScorer", "LexicalScorer", "RelevanceScorer", "cosine_similarity"]
