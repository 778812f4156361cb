"""
Pure content heuristics: text normalization, bypass detection, formatting
checks and the additive suspicion score.

Nothing here touches Discord or persistent state; every function is a
deterministic function of its arguments (the score additionally takes the
current time so callers and tests can pin it).
"""

from __future__ import annotations

import datetime
import re
from typing import Optional

from modwatch.moderation import content_patterns as patterns

MAX_SCORE = 100
SUBSTITUTION_THRESHOLD = 3
MIN_SUBSTITUTION_TERM_LENGTH = 4

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_UPPERCASE = re.compile(r"[A-Z]")
_REPEATED_CHAR = re.compile(r"(.)\1{6,}")
_REPEATED_PUNCTUATION = re.compile(r"[.!?]{3,}")


def normalize(text: str) -> str:
    """Strip zero-width and non-word characters, fold Cyrillic lookalikes, collapse whitespace, lowercase."""
    text = patterns.ZERO_WIDTH_CHARS.sub("", text or "")
    text = _NON_WORD.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    return text.lower().translate(patterns.HOMOGLYPHS).strip()


def _substitution_pattern(term: str) -> tuple[str, int]:
    pattern = term
    count = 0
    for char, substitute in patterns.COMMON_SUBSTITUTIONS.items():
        if char in pattern:
            pattern = pattern.replace(char, substitute)
            count += 1
    return pattern, count


def detect_bypass_attempt(text: str) -> bool:
    """Return True when the text looks like an obfuscated explicit term.

    URLs are removed first; normalizing a link glues its parts together
    (``https://example.com`` becomes ``httpsexamplecom``), which reads as
    leetspeak. Two checks then run on the normalized text: a handful of
    leetspeak patterns for the most severe terms, then a character-class
    rewrite of every listed term that is long enough and has at least three
    substitutable letters.
    """
    normalized = normalize(patterns.URL_REGEX.sub(" ", text or ""))

    if any(pattern.search(normalized) for pattern in patterns.OBVIOUS_BYPASS_PATTERNS):
        return True

    for term in patterns.BLOCKED_TERMS:
        if len(term) < MIN_SUBSTITUTION_TERM_LENGTH:
            continue
        pattern, substitutions = _substitution_pattern(term)
        if substitutions >= SUBSTITUTION_THRESHOLD and re.search(pattern, normalized, re.IGNORECASE):
            return True

    return False


def detect_suspicious_formatting(text: str) -> bool:
    """Markup fences, stretched spacing, or short mixed Cyrillic/Latin text."""
    text = text or ""
    if patterns.FORMATTING_SPAM.search(text):
        return True
    if patterns.SPACING_PATTERN.search(text):
        return True
    has_cyrillic = patterns.CYRILLIC_CHARS.search(text) is not None
    has_latin = patterns.LATIN_CHARS.search(text) is not None
    return has_cyrillic and has_latin and len(text) < 50


def _account_age_days(created_at: Optional[datetime.datetime], now: datetime.datetime) -> Optional[float]:
    if created_at is None:
        return None
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=datetime.timezone.utc)
    return (now - created_at).total_seconds() / 86400


def suspicion_score(
    text: str,
    created_at: Optional[datetime.datetime] = None,
    now: Optional[datetime.datetime] = None,
) -> int:
    """
    Compute the additive suspicion score of a message.

    Parameters
    ----------
    text:
        Raw message content (not normalized).
    created_at:
        Creation time of the author's account, if known.
    now:
        Reference time for the account-age bonus; defaults to the current UTC time.

    Returns
    -------
    int
        Score clamped to ``[0, 100]``.
    """
    text = text or ""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    score = 0

    if patterns.KEYWORD_REGEX.search(text):
        score += 20
    if patterns.PARTIAL_REGEX.search(text):
        score += 8
    if detect_bypass_attempt(text):
        score += 25
    if detect_suspicious_formatting(text):
        score += 12

    urls = patterns.find_urls(text)
    if len(urls) > 5:
        score += 8
    if len(urls) > 2 and len(text) < 50:
        score += 5

    if len(text) > 20:
        caps_ratio = len(_UPPERCASE.findall(text)) / len(text)
        if caps_ratio > 0.8:
            score += 6

    if _REPEATED_CHAR.search(text) and not _REPEATED_PUNCTUATION.search(text):
        score += 4

    age_days = _account_age_days(created_at, now)
    if age_days is not None:
        if age_days < 3:
            score += 8
        if age_days < 0.5:
            score += 15

    # Ordinary prose gets a small discount
    if len(text) > 10 and " " in text and "http" not in text:
        score = max(0, score - 3)

    return min(score, MAX_SCORE)
