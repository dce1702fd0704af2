from typing import List

from .history import AnswerKind, classify_answer


def compute_confidence(answers: List[str], window: int = 5) -> float:
    recent = answers[-window:] if window > 0 else []
    if not recent:
        return 0.0
    yes_count = sum(1 for a in recent if classify_answer(a) is AnswerKind.YES)
    return yes_count / len(recent)


def is_guess_ready(question_count: int, confidence: float, *, low: int = 15, high: int = 20, threshold: float = 0.5) -> bool:
    if question_count < low:
        return False
    return confidence > threshold or question_count >= high


def compute_progress(question_count: int, confidence: float, is_guess: bool) -> int:
    if is_guess:
        return 100
    base = min(90, max(0, question_count) * 5)
    boost = min(15, confidence * 20) if confidence > 0.6 else 0
    return int(round(min(95, base + boost)))
