"""Content moderation for note text and author names.

The board only consults moderation through the ``Moderator`` protocol
(``is_flagged`` and ``sanitize``), so a stricter service can be swapped in.
The default is a small English + Amharic word list.
"""

import re
from typing import Iterable, List, Optional, Protocol

DEFAULT_WORDS: List[str] = [
    # English
    "damn", "hell", "shit", "fuck", "bitch", "ass", "bastard", "crap", "idiot",
    # Amharic
    "ወሬ", "ዘርጣ", "ቆማጣ",
]

# Latin letters, digits, whitespace, the Ethiopic block, and . _ -
_AUTHOR_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9\s\u1200-\u137F._\-]+$")

_TAG_CHARS = re.compile(r"[<>]")
_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+=", re.IGNORECASE)


class Moderator(Protocol):
    def is_flagged(self, text: str) -> bool:
        ...

    def sanitize(self, text: str) -> str:
        ...


def sanitize_text(text: str) -> str:
    """Strip markup fragments that could be interpreted by a renderer."""
    text = _TAG_CHARS.sub("", text)
    text = _JS_PROTOCOL.sub("", text)
    text = _EVENT_HANDLER.sub("", text)
    return text.strip()


def validate_author_name(name: str, max_length: int = 50) -> bool:
    """Check an author name against the allowed alphabet and length."""
    return 1 <= len(name) <= max_length and bool(_AUTHOR_NAME_PATTERN.match(name))


class WordListModerator:
    """Flags and masks whole words from a fixed list, case-insensitively."""

    def __init__(self, words: Optional[Iterable[str]] = None):
        self.words = [w for w in (DEFAULT_WORDS if words is None else words) if w]
        if self.words:
            alternation = "|".join(
                re.escape(w) for w in sorted(self.words, key=len, reverse=True)
            )
            self._pattern: Optional[re.Pattern] = re.compile(
                rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE
            )
        else:
            self._pattern = None

    def contains_profanity(self, text: str) -> bool:
        return bool(self._pattern and self._pattern.search(text))

    def clean_text(self, text: str) -> str:
        """Replace every listed word with asterisks of the same length."""
        if self._pattern is None:
            return text.strip()
        return self._pattern.sub(lambda m: "*" * len(m.group(0)), text).strip()

    def is_flagged(self, text: str) -> bool:
        return self.contains_profanity(text)

    def sanitize(self, text: str) -> str:
        return self.clean_text(sanitize_text(text))
