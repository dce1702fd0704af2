import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence

from ..models import Message
from .guess_extractor import extract_name
from .sanitizer import is_guess

CORRECT_GUESS_REPLY = "Yes, that's correct!"
WRONG_GUESS_PREFIX = "No, that's not correct."


class AnswerKind(str, Enum):
    YES = "yes"
    NO = "no"
    DONT_KNOW = "dont_know"
    OTHER = "other"


@dataclass(frozen=True)
class QuestionAnswerPair:
    question: str
    answer: str

    @property
    def kind(self) -> "AnswerKind":
        return classify_answer(self.answer)


_DONT_KNOW = re.compile(r"\b(?:don'?t know|do not know|not sure|unsure|no idea|unknown|idk|can'?t say)\b")
_PROBABLY_NOT = re.compile(r"\bprobably not\b")
_YES = re.compile(r"\b(?:yes|yeah|yep|probably|partially|sometimes)\b")
_NO = re.compile(r"\b(?:no|nope|not)\b")


def classify_answer(text: str) -> AnswerKind:
    lowered = (text or "").strip().lower()
    if _DONT_KNOW.search(lowered):
        return AnswerKind.DONT_KNOW
    if _PROBABLY_NOT.search(lowered):
        return AnswerKind.NO
    if _YES.search(lowered):
        return AnswerKind.YES
    if _NO.search(lowered):
        return AnswerKind.NO
    return AnswerKind.OTHER


def qa_pairs(history: Sequence[Message]) -> List[QuestionAnswerPair]:
    """Consecutive (assistant, user) pairs, skipping guesses and their verdicts."""
    pairs: List[QuestionAnswerPair] = []
    for previous, current in zip(history, history[1:]):
        if previous.role != "assistant" or current.role != "user":
            continue
        if is_guess(previous.content):
            continue
        pairs.append(QuestionAnswerPair(question=previous.content, answer=current.content))
    return pairs


def asked_questions(history: Sequence[Message]) -> List[str]:
    return [
        m.content.strip().lower()
        for m in history
        if m.role == "assistant" and not is_guess(m.content)
    ]


def user_answers(history: Sequence[Message]) -> List[str]:
    return [pair.answer for pair in qa_pairs(history)]


def last_assistant_message(history: Sequence[Message]) -> Message | None:
    for message in reversed(history):
        if message.role == "assistant":
            return message
    return None


def rejected_guesses(history: Sequence[Message]) -> List[str]:
    names: List[str] = []
    for previous, current in zip(history, history[1:]):
        if previous.role != "assistant" or current.role != "user":
            continue
        if not is_guess(previous.content) or not current.content.startswith(WRONG_GUESS_PREFIX):
            continue
        name = extract_name(previous.content)
        if name and name not in names:
            names.append(name)
    return names


def wrong_guess_reply(actual_answer: str | None) -> str:
    if actual_answer:
        return f"{WRONG_GUESS_PREFIX} The correct answer is: {actual_answer}"
    return f"{WRONG_GUESS_PREFIX} Please ask more questions."
