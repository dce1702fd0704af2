import re
from typing import Iterable, Sequence, Set

STOPWORDS = frozenset({
    "the", "your", "character", "is", "are", "does", "have", "has", "was", "were",
    "can", "could", "would", "should",
})

_WORD = re.compile(r"[a-z0-9']+")


def question_words(text: str) -> Set[str]:
    return {
        word for word in _WORD.findall((text or "").lower())
        if len(word) >= 3 and word not in STOPWORDS
    }


def _vocabulary(previous: Iterable[str]) -> Set[str]:
    words: Set[str] = set()
    for question in previous:
        words |= question_words(question)
    return words


def similarity(candidate: str, previous: Sequence[str]) -> float:
    """Share of words common to the candidate and all previous questions taken together."""
    candidate_words = question_words(candidate)
    vocabulary = _vocabulary(previous)
    if not candidate_words or not vocabulary:
        return 0.0
    overlap = candidate_words & vocabulary
    return len(overlap) / max(len(candidate_words), len(vocabulary))


def is_duplicate_question(candidate: str, previous: Sequence[str], threshold: float = 0.7) -> bool:
    normalized = (candidate or "").strip().lower()
    if not normalized:
        return False
    if normalized in {q.strip().lower() for q in previous}:
        return True
    return similarity(candidate, previous) >= threshold
