import re
from typing import Optional

_NAME_PATTERNS = (
    re.compile(
        r"(?:I think you are thinking of|Are you thinking of|I believe you're thinking of|My guess is)"
        r"[:\s]+(?:the\s+)?(.*?)(?:[?.!](?:\s|$)|[?!]|$)",
        re.IGNORECASE,
    ),
    re.compile(
        r"(?:Thinking of|It is|That would be)[:\s]+(?:the\s+)?(.*?)(?:[?.!](?:\s|$)|[?!]|$)",
        re.IGNORECASE,
    ),
)
_LEADING_THE = re.compile(r"^the\s+", re.IGNORECASE)
_TOKEN_PUNCTUATION = re.compile(r"[?.,:;!\"']")


def _clean_name(candidate: str) -> str:
    name = candidate.strip().strip("\"'“”‘’").strip()
    name = _LEADING_THE.sub("", name)
    return name.rstrip(".?!,;:").strip()


def _capitalized_run(text: str) -> Optional[str]:
    words = []
    for token in text.split():
        word = _TOKEN_PUNCTUATION.sub("", token)
        if len(word) > 1 and word[0].isupper():
            words.append(word)
            if len(words) >= 2:
                break
        elif words:
            break
    return " ".join(words) or None


def extract_name(text: Optional[str]) -> Optional[str]:
    """Best-effort extraction of the candidate name from a guess line.

    Tries the known lead-in templates first and falls back to the first run of
    capitalized words. Returns None when nothing plausible is found.
    """
    if not text:
        return None
    for pattern in _NAME_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1):
            name = _clean_name(match.group(1))
            if name:
                return name
    return _capitalized_run(text)
