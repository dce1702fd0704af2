import re

GUESS_PHRASES = (
    "i think you are thinking of",
    "are you thinking of",
    "you are thinking of",
    "i believe you're thinking of",
    "my guess is",
)

_BOLD = re.compile(r"\*\*(.*?)\*\*")
_ITALIC = re.compile(r"\*(.*?)\*")
_CODE = re.compile(r"`(.*?)`")
_HEADING = re.compile(r"#{1,6}\s*")

_EMOJI = re.compile(
    "["
    "\U0001F600-\U0001F64F"  # emoticons
    "\U0001F300-\U0001F5FF"  # symbols & pictographs
    "\U0001F680-\U0001F6FF"  # transport
    "\U0001F1E0-\U0001F1FF"  # flags
    "\U0001F900-\U0001F9FF"
    "\U0001FA70-\U0001FAFF"
    "\u2600-\u26FF"  # misc symbols
    "\u2700-\u27BF"  # dingbats
    "\ufe0f\u200d"
    "]"
)

_GREETING_WORDS = (
    "great", "okay", "ok", "alright", "all right", "sure", "hello", "hi", "hey",
    "interesting", "got it", "perfect", "excellent", "awesome", "wonderful", "nice",
    "cool", "thanks", "thank you", "good", "hmm+", "ah+", "oh+", "well", "wow",
    "fantastic", "understood", "i see", "noted",
)
_LEADING_GREETING = re.compile(
    r"^(?:(?:" + "|".join(_GREETING_WORDS) + r")\s*[!.,:;…]+\s*)+",
    re.IGNORECASE,
)
_TRAILING_PARENTHETICAL = re.compile(r"\s*\([^()]*\)\s*(?=[?.!]*$)")
_WHITESPACE = re.compile(r"\s+")


def is_guess(text: str | None) -> bool:
    lowered = (text or "").lower()
    return any(phrase in lowered for phrase in GUESS_PHRASES)


def _strip_markdown(text: str) -> str:
    text = _BOLD.sub(r"\1", text)
    text = _ITALIC.sub(r"\1", text)
    text = _CODE.sub(r"\1", text)
    text = _HEADING.sub("", text)
    return text.replace("*", "").replace("`", "")


def _strip_exclamation_lead(text: str) -> str:
    # "That narrows it down! Is your character real?" -> "Is your character real?"
    question_at = text.find("?")
    if question_at == -1:
        return text
    bang_at = text.rfind("!", 0, question_at)
    if bang_at == -1:
        return text
    return text[bang_at + 1:]


def _first_question(text: str) -> str:
    question_at = text.find("?")
    if question_at == -1:
        return text
    return text[:question_at + 1]


def _ensure_question_mark(text: str) -> str:
    if not text or text.endswith("?") or ":" in text:
        return text
    stripped = text.rstrip(".! ")
    return stripped + "?" if stripped else ""


def _clean_question(text: str) -> str:
    # every step only removes text (or appends a single "?"), so this settles quickly
    previous = None
    while previous != text:
        previous = text
        text = _LEADING_GREETING.sub("", text)
        text = _strip_exclamation_lead(text)
        text = _first_question(text)
        text = _TRAILING_PARENTHETICAL.sub("", text)
        text = _WHITESPACE.sub(" ", text).strip()
        text = _ensure_question_mark(text)
    return text


def sanitize(raw: str | None) -> str:
    """Normalize raw model output into a single clean question or a guess line.

    Guesses keep their wording apart from markdown and emoji so that the
    candidate name survives intact.
    """
    if not raw:
        return ""
    text = _strip_markdown(raw)
    text = _EMOJI.sub("", text)
    text = _WHITESPACE.sub(" ", text).strip()
    if is_guess(text):
        return text
    return _clean_question(text)
