"""
Wiki Text Processing

Pure helpers that turn scraped wiki markup into normalized plain text and
mine it for structured signals (shell commands, file paths, error
vocabulary). Nothing here performs I/O; every function is deterministic.

All pattern sets are compiled once at import time and never mutated.
"""

from __future__ import annotations

import hashlib
import re
from typing import Any, Dict, Iterable, List

from langchain_text_splitters import RecursiveCharacterTextSplitter


# ---------------------------------------------------------------------
# Patterns & Vocabularies
# ---------------------------------------------------------------------

_HTML_TAG = re.compile(r"<[^>]*>")
_WIKI_LINK = re.compile(r"\[\[([^\]]*)\]\]")
_HORIZONTAL_SPACE = re.compile(r"[^\S\n]+")
_MULTI_SPACE = re.compile(r"\s+")

_PROMPT_COMMANDS = (
    re.compile(r"^\s*\$\s+(.+)$"),
    re.compile(r"^\s*#\s+(.+)$"),
)
_BARE_COMMANDS = re.compile(r"^\s*((?:sudo|pacman|systemctl)\s+.+)$")

_FILE_PATHS = (
    re.compile(r"/[a-zA-Z0-9\-_/.]+\.conf"),
    re.compile(r"/[a-zA-Z0-9\-_/.]+\.service"),
    re.compile(r"/etc/[a-zA-Z0-9\-_/.]+"),
    re.compile(r"/usr/[a-zA-Z0-9\-_/.]+"),
    re.compile(r"/var/[a-zA-Z0-9\-_/.]+"),
    re.compile(r"/home/[a-zA-Z0-9\-_/.]+"),
    re.compile(r"~/[a-zA-Z0-9\-_/.]+"),
)

_ERROR_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"error[:\s]+[a-zA-Z0-9\s\-._/]+",
        r"failed[:\s]+[a-zA-Z0-9\s\-._/]+",
        r"cannot[:\s]+[a-zA-Z0-9\s\-._/]+",
        r"unable to[:\s]+[a-zA-Z0-9\s\-._/]+",
        r"permission denied[:\s]*[a-zA-Z0-9\s\-._/]*",
        r"no such file or directory[:\s]*[a-zA-Z0-9\s\-._/]*",
        r"command not found[:\s]*[a-zA-Z0-9\s\-._/]*",
        r"segmentation fault[:\s]*[a-zA-Z0-9\s\-._/]*",
        r"kernel panic[:\s]*[a-zA-Z0-9\s\-._/]*",
        r"dependency.*conflict[:\s]*[a-zA-Z0-9\s\-._/]*",
        r"package.*not found[:\s]*[a-zA-Z0-9\s\-._/]*",
        r"service.*failed[:\s]*[a-zA-Z0-9\s\-._/]*",
    )
)

# Paragraph breaks first, then sentence ends; terminators stay with their sentence
_CHUNK_SEPARATORS = ["\n\n", r"(?<=[.!?])\s+"]
_SENTENCE_TERMINATORS = re.compile(r"[.!?]+")

ERROR_KEYWORDS = (
    "error", "failed", "failure", "problem", "issue", "trouble",
    "cannot", "can't", "unable", "not working", "broken",
    "denied", "refused", "rejected", "forbidden",
    "missing", "not found", "no such", "does not exist",
    "timeout", "connection", "network", "unreachable",
    "permission", "access", "unauthorized",
    "conflict", "dependency", "package", "version",
    "kernel panic", "segmentation fault", "core dump",
    "service failed", "unit failed", "mount failed",
)

TOPICS = ("pacman", "systemd", "grub", "xorg", "wayland", "network", "audio", "video", "kernel")

NEUTRAL_READABILITY = 50


# ---------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------

def _dedupe(items: Iterable[str]) -> List[str]:
    """Drop repeated items, keeping first-seen order."""
    return list(dict.fromkeys(items))


def _resolve_link(match: re.Match) -> str:
    parts = match.group(1).split("|")
    if len(parts) > 1:
        return parts[1]
    return parts[0]


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def clean_content(text: str) -> str:
    """
    Normalize scraped wiki text.

    Markup tags are removed and ``[[Page|Display]]`` links resolved to their
    display text (``[[Page]]`` to the page name). Both rewrites repeat until
    the text stops changing, so nested constructs cannot survive a single
    pass. Horizontal whitespace collapses to one space, lines are trimmed,
    and runs of blank lines are capped at two.

    ``clean_content(clean_content(x)) == clean_content(x)`` for every ``x``.
    """
    previous = None
    while previous != text:
        previous = text
        text = _HTML_TAG.sub("", text)
        text = _WIKI_LINK.sub(_resolve_link, text)

    text = _HORIZONTAL_SPACE.sub(" ", text)

    cleaned: List[str] = []
    empty_run = 0
    for line in text.split("\n"):
        line = line.strip()
        if not line:
            empty_run += 1
            if empty_run <= 2:
                cleaned.append("")
        else:
            empty_run = 0
            cleaned.append(line)

    return "\n".join(cleaned).strip()


def extract_command_examples(text: str) -> List[str]:
    """
    Find shell command examples.

    ``$ cmd`` and ``# cmd`` prompt lines yield the command without its
    prompt; lines starting with ``sudo``, ``pacman`` or ``systemctl`` are
    kept whole. Only commands of 4 to 199 characters are returned, each
    once, in document order.
    """
    commands: List[str] = []

    for line in text.splitlines():
        command = None
        for pattern in _PROMPT_COMMANDS:
            match = pattern.match(line)
            if match:
                command = match.group(1)
                break
        if command is None:
            match = _BARE_COMMANDS.match(line)
            if match:
                command = match.group(1)
        if command is None:
            continue

        command = command.strip()
        if 3 < len(command) < 200:
            commands.append(command)

    return _dedupe(commands)


def extract_file_paths(text: str) -> List[str]:
    """Find configuration files, unit files and absolute system paths."""
    paths: List[str] = []
    for pattern in _FILE_PATHS:
        for match in pattern.findall(text):
            if 3 < len(match) < 100:
                paths.append(match)
    return _dedupe(paths)


def extract_error_keywords(text: str) -> List[str]:
    """Return the error vocabulary terms present in ``text``."""
    lowered = text.lower()
    return [keyword for keyword in ERROR_KEYWORDS if keyword in lowered]


def extract_error_patterns(text: str) -> List[str]:
    """
    Mine error phrases such as ``error: failed to commit transaction``.

    Matches are whitespace-normalized and lower-cased; phrases of 6 to 99
    characters are returned sorted and without duplicates.
    """
    patterns = set()
    for regex in _ERROR_PATTERNS:
        for match in regex.findall(text):
            pattern = _MULTI_SPACE.sub(" ", match.strip())
            if 5 < len(pattern) < 100:
                patterns.add(pattern.lower())
    return sorted(patterns)


def split_into_chunks(text: str, max_size: int) -> List[str]:
    """
    Split ``text`` into chunks of at most ``max_size`` characters.

    Paragraphs (blank-line separated) are packed greedily first. A
    paragraph still over the limit is re-packed sentence by sentence. A
    lone sentence longer than ``max_size`` is returned as-is; nothing is
    split below sentence granularity.
    """
    if max_size <= 0:
        raise ValueError("max_size must be positive")

    if len(text) <= max_size:
        stripped = text.strip()
        return [stripped] if stripped else []

    splitter = RecursiveCharacterTextSplitter(
        chunk_size=max_size,
        chunk_overlap=0,
        length_function=len,
        separators=_CHUNK_SEPARATORS,
        is_separator_regex=True,
    )
    chunks = (chunk.strip() for chunk in splitter.split_text(text))
    return [chunk for chunk in chunks if chunk]


def count_words(text: str) -> int:
    """Whitespace-delimited word count."""
    return len(text.split())


def content_hash(text: str) -> str:
    """Fingerprint used to detect unchanged page content between crawls."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def calculate_readability(text: str) -> int:
    """
    Basic 0-100 readability score; shorter sentences score higher.

    Text without any sentence terminator gets the neutral score of 50.
    """
    if not text.strip():
        return 0

    if not _SENTENCE_TERMINATORS.search(text):
        return NEUTRAL_READABILITY

    sentences = [s for s in _SENTENCE_TERMINATORS.split(text) if s.strip()]
    if not sentences:
        return NEUTRAL_READABILITY

    avg_words_per_sentence = count_words(text) / len(sentences)
    score = 100 - int(avg_words_per_sentence * 2)
    return max(0, min(100, score))


def extract_meta_tags(text: str) -> Dict[str, str]:
    """Tag content with a category, a difficulty tier and a topic."""
    lowered = text.lower()
    meta: Dict[str, str] = {}

    if "troubleshoot" in lowered:
        meta["category"] = "troubleshooting"
    elif "install" in lowered:
        meta["category"] = "installation"
    elif "config" in lowered:
        meta["category"] = "configuration"
    else:
        meta["category"] = "general"

    command_count = len(extract_command_examples(text))
    if command_count > 10:
        meta["difficulty"] = "advanced"
    elif command_count > 3:
        meta["difficulty"] = "intermediate"
    else:
        meta["difficulty"] = "beginner"

    for topic in TOPICS:
        if topic in lowered:
            meta["topic"] = topic
            break

    return meta


def content_tags(text: str) -> Dict[str, Any]:
    """
    Searchable descriptors attached to an upload.

    Combines ``extract_meta_tags`` with the readability score, referenced
    file paths and matched error vocabulary.
    """
    tags: Dict[str, Any] = dict(extract_meta_tags(text))
    tags["readability"] = calculate_readability(text)
    tags["file_paths"] = extract_file_paths(text)
    tags["error_keywords"] = extract_error_keywords(text)
    return tags
