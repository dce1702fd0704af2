"""Keyword based topic tagging for asked questions.

The tags steer question variety in the prompt builder. The classifier is
hidden behind the ``TopicClassifier`` protocol so another matching strategy
can replace the keyword lists without touching the controller.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Set

from .history import AnswerKind, QuestionAnswerPair


class TopicTag(str, Enum):
    GENDER = "gender"
    REAL_FICTIONAL = "real_fictional"
    OCCUPATION = "occupation"
    APPEARANCE = "appearance"
    RELATIONSHIP = "relationship"
    TIME_PERIOD = "time_period"
    NATIONALITY = "nationality"

    @property
    def label(self) -> str:
        return TOPIC_LABELS[self]


TOPIC_LABELS: Dict[TopicTag, str] = {
    TopicTag.GENDER: "gender",
    TopicTag.REAL_FICTIONAL: "real/fictional",
    TopicTag.OCCUPATION: "occupation",
    TopicTag.APPEARANCE: "appearance",
    TopicTag.RELATIONSHIP: "relationships",
    TopicTag.TIME_PERIOD: "time period",
    TopicTag.NATIONALITY: "nationality",
}

# Order matters: when the last question hit several tags, the first one listed wins.
TOPIC_KEYWORDS: Dict[TopicTag, Sequence[str]] = {
    TopicTag.OCCUPATION: (
        "actor", "actress", "acting", "movie", "film", "role", "job", "occupation",
        "profession", "work", "career", "singer", "musician", "artist", "director",
        "writer", "performer", "entertainer", "athlete", "politician", "president",
        "business", "scientist", "youtuber", "influencer", "comedian", "rapper",
    ),
    TopicTag.GENDER: ("male", "female", "man", "woman", "men", "women", "gender", "boy", "girl"),
    TopicTag.REAL_FICTIONAL: (
        "real", "fictional", "fictional character", "real person", "exists", "made up",
        "cartoon", "animated",
    ),
    TopicTag.APPEARANCE: (
        "hair", "eye", "tall", "short", "appearance", "look", "wear", "clothing", "dress",
        "bald", "beard", "mustache", "moustache", "glasses", "tattoo", "piercing", "skin",
        "weight", "overweight", "build", "muscle", "thin", "fat", "slim", "curly", "straight",
        "blonde", "blond", "brunette", "red", "black", "brown", "blue", "green", "color",
        "colour", "accent", "voice", "catchphrase", "fashion", "style",
    ),
    TopicTag.RELATIONSHIP: (
        "married", "single", "relationship", "spouse", "partner", "parent", "child",
        "sibling", "divorced", "dating", "husband", "wife", "kids", "children",
    ),
    TopicTag.TIME_PERIOD: (
        "century", "decade", "born", "died", "alive", "dead", "historical", "modern",
        "ancient", "year", "era",
    ),
    TopicTag.NATIONALITY: (
        "american", "british", "english", "french", "german", "japanese", "chinese",
        "korean", "indian", "canadian", "australian", "italian", "spanish", "mexican",
        "brazilian", "russian", "nationality", "country", "from",
    ),
}

# Every question names "your character"; it would otherwise match "act".
_SUBJECT_PHRASES = re.compile(r"\b(?:your|the|this|that)\s+character(?:'s)?\b", re.IGNORECASE)


class TopicClassifier(Protocol):
    def classify(self, text: str) -> Set[TopicTag]:
        ...


class KeywordTopicClassifier:
    """Matches each tag's keywords as case-insensitive substrings anchored at a word start."""

    def __init__(self, keywords: Optional[Dict[TopicTag, Sequence[str]]] = None) -> None:
        self.keywords = keywords or TOPIC_KEYWORDS
        self._patterns = {
            tag: re.compile(r"\b(?:" + "|".join(re.escape(k) for k in words) + r")", re.IGNORECASE)
            for tag, words in self.keywords.items()
        }

    def classify(self, text: str) -> Set[TopicTag]:
        stripped = _SUBJECT_PHRASES.sub(" ", text or "")
        return {tag for tag, pattern in self._patterns.items() if pattern.search(stripped)}

    def ordered(self, tags: Iterable[TopicTag]) -> List[TopicTag]:
        wanted = set(tags)
        return [tag for tag in self.keywords if tag in wanted]


def tally_recent(questions: Sequence[str], classifier: TopicClassifier, window: int = 3) -> Dict[TopicTag, int]:
    tally: Dict[TopicTag, int] = {tag: 0 for tag in TopicTag}
    for question in list(questions)[-window:] if window > 0 else []:
        for tag in classifier.classify(question):
            tally[tag] += 1
    return tally


_DONT_KNOW_TOPICS = (
    ("age", re.compile(r"\b(?:age|aged|old|older|younger|young|teen|teenager|elderly)\b|\b(?:over|under|above|below)\s+\d+")),
    ("height", re.compile(r"\b(?:tall|taller|short|shorter|height|feet|foot|cm|inches)\b")),
    ("weight", re.compile(r"\b(?:weight|weigh|overweight|heavy|thin|slim|skinny|fat|muscular)\b")),
    ("nationality", re.compile(r"\b(?:nationality|country|citizen|from)\b|\b(?:american|british|english|french|german|japanese|chinese|korean|indian|canadian|australian|italian|spanish|mexican|russian)\b")),
    ("time period", re.compile(r"\b(?:century|decade|era|born|died|alive|historical|ancient|modern)\b|\b(?:1[0-9]|20)\d{2}s?\b|\b\d+(?:st|nd|rd|th)\b")),
)


def dont_know_topic(question: str) -> Optional[str]:
    """Coarse label for a question the player could not answer, if one applies."""
    lowered = (question or "").lower()
    for label, pattern in _DONT_KNOW_TOPICS:
        if pattern.search(lowered):
            return label
    return None


_BALD = re.compile(r"\bbald\b")
_HAIR = re.compile(r"\bhair(?:ed|style|cut)?\b|\b(?:blonde?|brunette|redhead|curly|ponytail|dreadlocks)\b")


@dataclass
class FactSummary:
    confirmed: List[str] = field(default_factory=list)
    excluded: List[str] = field(default_factory=list)
    hard_constraints: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.confirmed or self.excluded or self.hard_constraints)


def _as_fact(question: str) -> str:
    return question.strip().rstrip("?").strip()


def summarize_facts(pairs: Sequence[QuestionAnswerPair]) -> FactSummary:
    summary = FactSummary()
    is_bald: Optional[bool] = None
    for pair in pairs:
        kind = pair.kind
        if kind not in (AnswerKind.YES, AnswerKind.NO):
            continue
        fact = _as_fact(pair.question)
        if kind is AnswerKind.YES:
            summary.confirmed.append(fact)
        else:
            summary.excluded.append(fact)
        lowered = pair.question.lower()
        if _BALD.search(lowered):
            is_bald = kind is AnswerKind.YES
        elif _HAIR.search(lowered) and kind is AnswerKind.YES:
            is_bald = False
    if is_bald is True:
        summary.hard_constraints.append("The character is BALD: never guess someone who has hair.")
    elif is_bald is False:
        summary.hard_constraints.append("The character HAS HAIR: never guess someone who is bald.")
    return summary
