"""
Query Preprocessing

Normalizes free-text error queries before they are sent to the context
provider: lower-case, strip punctuation that never appears in error
messages, and drop conversational filler while always keeping technical
terms.
"""

from __future__ import annotations

import re
from typing import List

STOP_WORDS = frozenset(
    {
        "please", "help", "how", "do", "i", "can", "you", "me", "my", "the", "a", "an",
        "is", "are", "was", "were", "be", "been", "being", "have", "has", "had", "will",
        "would", "could", "should", "may", "might", "must", "shall", "does", "did",
        "don't", "doesn't", "won't", "wouldn't", "couldn't", "shouldn't", "mustn't",
        "shan't", "didn't",
    }
)

TECHNICAL_KEYWORDS = (
    "pacman", "systemd", "grub", "xorg", "wayland", "networkmanager",
    "bluetooth", "audio", "pulseaudio", "alsa", "nvidia", "amd",
    "kernel", "module", "service", "unit", "mount", "fstab",
    "aur", "makepkg", "pkgbuild", "dependency", "conflict",
)

_DIGIT = re.compile(r"\d")
_HYPHENATED_IDENTIFIER = re.compile(r"^[a-z]+(?:-[a-z]+)+$")
_DISALLOWED_CHARS = re.compile(r"[^\w\-./:']")
_NON_WORD = re.compile(r"\W+")


def is_technical_term(word: str) -> bool:
    """
    Heuristic for tokens worth keeping even if they are stop words.

    A token is technical if it contains an Arch ecosystem keyword, contains
    a digit (error codes, versions) or is a hyphenated lowercase identifier
    such as ``linux-firmware``.
    """
    if any(keyword in word for keyword in TECHNICAL_KEYWORDS):
        return True
    if _DIGIT.search(word):
        return True
    return len(word) > 2 and bool(_HYPHENATED_IDENTIFIER.match(word))


def preprocess_query(raw: str) -> str:
    """
    Return the normalized form of ``raw``.

    If filtering would leave less than a third of the original length, the
    raw query is returned unchanged.
    """
    filtered: List[str] = []

    for token in raw.lower().split():
        # apostrophes survive so contractions still match the stop list
        cleaned = _DISALLOWED_CHARS.sub("", token)
        if not cleaned:
            continue
        if cleaned in STOP_WORDS and not is_technical_term(cleaned):
            continue
        filtered.append(cleaned.replace("'", ""))

    result = " ".join(part for part in filtered if part)
    if len(result) * 3 < len(raw):
        return raw
    return result


def extract_important_words(query: str) -> List[str]:
    """Technical terms longer than two characters, in query order."""
    important: List[str] = []
    for word in _NON_WORD.split(query.lower()):
        word = word.strip()
        if len(word) > 2 and is_technical_term(word):
            important.append(word)
    return important
