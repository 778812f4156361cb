"""
Word lists, domain lists and compiled regular expressions shared by the
content checks.

The built-in term list is split in half: the first half forms the explicit
keyword pattern (enforced for everyone but exempt actors), the second half
the weaker partial pattern that only contributes to the suspicion score.
"""

from __future__ import annotations

import re
from typing import List, Optional
from urllib.parse import urlsplit

BLOCKED_TERMS: List[str] = [
    "porn", "pornography", "xxx", "nude", "naked", "hardcore", "erotic", "erotica",
    "fetish", "bdsm", "bondage", "threesome", "orgy", "cum", "cock", "dick",
    "pussy", "vagina", "penis", "anal", "blowjob", "handjob", "tit", "tits",
    "boobs", "ass", "butt", "creampie", "slut", "whore", "cumshot", "masturbate", "masturbation",
    "nsfw", "18+", "adult", "mature", "x-rated", "r-rated", "softcore", "semi-nude",
    "undressing", "strip", "undressed", "topless", "bottomless", "bare", "nudity",
    "sensorial", "intimate", "sexual", "sensual", "sex", "onlyfans", "chaturbate",
    "xvideos", "pornhub", "brazzers", "milf", "dildo", "vibrator", "escort",
    "camgirl", "camboy", "webcam", "livecam", "sexchat", "cybersex", "sextoy",
]

_HALF = len(BLOCKED_TERMS) // 2
EXPLICIT_TERMS: List[str] = BLOCKED_TERMS[:_HALF]
PARTIAL_TERMS: List[str] = BLOCKED_TERMS[_HALF:]


def _word_alternation(terms: List[str]) -> re.Pattern[str]:
    return re.compile(r"\b(" + "|".join(re.escape(term) for term in terms) + r")\b", re.IGNORECASE)


KEYWORD_REGEX = _word_alternation(EXPLICIT_TERMS)
PARTIAL_REGEX = _word_alternation(PARTIAL_TERMS)

URL_REGEX = re.compile(r"(https?://\S+|www\.\S+)", re.IGNORECASE)
INVITE_REGEX = re.compile(
    r"(?:https?://)?(?:canary\.|ptb\.)?(?:discord(?:app)?\.com/invite|discord\.gg)/([A-Za-z0-9\-]+)",
    re.IGNORECASE,
)
MENTION_REGEX = re.compile(r"<@[!&]?\d+>")

ZERO_WIDTH_CHARS = re.compile("[\u200B\u200C\u200D\u200E\u200F\uFEFF]")
FORMATTING_SPAM = re.compile(r"(\*{3,}|_{3,}|`{3,}|~{3,})")
SPACING_PATTERN = re.compile(r"\w\s{3,}\w")
CYRILLIC_CHARS = re.compile("[\u0400-\u04FF]")
LATIN_CHARS = re.compile(r"[a-zA-Z]")

# Leetspeak variants of the most severe terms, tested against normalized text
OBVIOUS_BYPASS_PATTERNS = [
    re.compile(r"p[o0*@][r*][n*]", re.IGNORECASE),
    re.compile(r"s[e3*@][x*]", re.IGNORECASE),
    re.compile(r"f[u*@][c*k]", re.IGNORECASE),
]

# Cyrillic letters that pass for Latin ones in obfuscated spellings
HOMOGLYPHS = str.maketrans({
    "\u0430": "a",  # а
    "\u0435": "e",  # е
    "\u0451": "o",  # ё
    "\u043e": "o",  # о
    "\u0440": "p",  # р
    "\u0441": "c",  # с
    "\u0443": "y",  # у
    "\u0445": "x",  # х
    "\u0456": "i",  # і
    "\u043a": "k",  # к
})

COMMON_SUBSTITUTIONS = {
    "a": "[a@4]",
    "e": "[e3]",
    "i": "[i1]",
    "o": "[o0]",
    "s": "[s$5]",
}


# ==========================================
# Domain lists
# ==========================================

ADULT_DOMAINS = frozenset({
    "pornhub.com", "xvideos.com", "redtube.com", "youporn.com",
    "tube8.com", "spankbang.com", "xhamster.com", "sex.com",
    "porn.com", "thumbzilla.com", "pornmd.com", "eporner.com",
    "gotporn.com", "drtuber.com", "pornhd.com", "txxx.com",
    "beeg.com", "fapality.com", "nuvid.com", "sunporno.com",
})

PHISHING_DOMAINS = frozenset({
    "discord-nitro.com", "discord-nitro.ru", "discrod.com",
    "discordapp.ru", "discord-gift.com", "steam-community.com",
    "steamcommunitty.com", "steancommunity.com",
})

MALWARE_DOMAINS = frozenset({"malware.com", "virus.com", "trojan.com"})


def find_urls(text: str) -> List[str]:
    return URL_REGEX.findall(text or "")


def find_invite_codes(text: str) -> List[str]:
    return INVITE_REGEX.findall(text or "")


def count_mentions(text: str) -> int:
    return len(MENTION_REGEX.findall(text or ""))


def domain_of(url: str) -> str:
    """Return the lower-cased hostname of an absolute URL, or ``""``."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return ""
    return (host or "").lower()


def _matches_domain(url: str, domains: frozenset[str]) -> bool:
    domain = domain_of(url)
    if not domain:
        return False
    return any(domain == bad or domain.endswith(f".{bad}") for bad in domains)


def is_adult_site(url: str) -> bool:
    return _matches_domain(url, ADULT_DOMAINS)


def is_phishing_site(url: str) -> bool:
    return _matches_domain(url, PHISHING_DOMAINS)


def is_malware_site(url: str) -> bool:
    return _matches_domain(url, MALWARE_DOMAINS)


def is_suspicious_url(url: str) -> bool:
    return is_adult_site(url) or is_phishing_site(url) or is_malware_site(url)


def is_whitelisted_url(url: str, whitelist: List[str]) -> bool:
    """True when the URL's host is, or is a subdomain of, a whitelisted domain."""
    domain = domain_of(url if "://" in url else f"http://{url}")
    if domain.startswith("www."):
        domain = domain[4:]
    if not domain:
        return False
    return any(domain == allowed or domain.endswith(f".{allowed}") for allowed in whitelist)


def first_blocked_term(token: str, terms: List[str]) -> Optional[str]:
    """Return the first term equal to, or contained in, ``token``.

    Containment means a short term such as ``"ass"`` also matches inside an
    unrelated word like ``"class"``.
    """
    for term in terms:
        if term == token or term in token:
            return term
    return None
