import datetime

import pytest

from modwatch.moderation.suspicion_analyzer import (
    detect_bypass_attempt,
    detect_suspicious_formatting,
    normalize,
    suspicion_score,
)

NOW = datetime.datetime(2024, 6, 1, 12, 0, tzinfo=datetime.timezone.utc)


class TestNormalize:
    def test_strips_zero_width_and_punctuation(self):
        assert normalize("H\u200be\u200bllo, World!!") == "hello world"

    def test_collapses_whitespace(self):
        assert normalize("  a \n\t b  ") == "a b"

    def test_none_safe(self):
        assert normalize(None) == ""

    def test_folds_cyrillic_lookalikes(self):
        assert normalize("p\u043ern") == "porn"


class TestBypassDetection:
    @pytest.mark.parametrize("text", ["p\u0401rn", "p\u043ern", "p0rn", "s3x", "P*O*R*N", "p\u200bo\u200brn", "m4sturb4t3", "s3xu@l"])
    def test_obfuscated_terms(self, text):
        assert detect_bypass_attempt(text) is True

    @pytest.mark.parametrize("text", ["Let's meet for lunch tomorrow at noon", "great game last night", ""])
    def test_ordinary_text(self, text):
        assert detect_bypass_attempt(text) is False


class TestSuspiciousFormatting:
    def test_markup_fences(self):
        assert detect_suspicious_formatting("hello ***world***")
        assert detect_suspicious_formatting("```code```")

    def test_stretched_spacing(self):
        assert detect_suspicious_formatting("h     i")

    def test_short_mixed_scripts(self):
        assert detect_suspicious_formatting("привет hi")

    def test_long_mixed_scripts_are_fine(self):
        text = "привет " + "hello " * 10
        assert not detect_suspicious_formatting(text)

    def test_plain_text(self):
        assert not detect_suspicious_formatting("just a normal message")


class TestSuspicionScore:
    def test_ordinary_prose_scores_zero(self):
        assert suspicion_score("hello there, how are you?", now=NOW) == 0

    def test_explicit_keyword_and_bypass(self):
        # keyword 20 + obvious bypass 25
        assert suspicion_score("porn", now=NOW) == 45

    def test_bypass_only(self):
        assert suspicion_score("p0rn", now=NOW) == 25

    def test_caps(self):
        assert suspicion_score("WHYWONTYOUANSWERMYCALL", now=NOW) == 6

    def test_very_new_account(self):
        created = NOW - datetime.timedelta(hours=1)
        assert suspicion_score("hi", created_at=created, now=NOW) == 23

    def test_few_days_old_account(self):
        created = NOW - datetime.timedelta(days=2)
        assert suspicion_score("hi", created_at=created, now=NOW) == 8

    def test_naive_created_at_is_treated_as_utc(self):
        created = (NOW - datetime.timedelta(hours=1)).replace(tzinfo=None)
        assert suspicion_score("hi", created_at=created, now=NOW) == 23

    def test_many_short_links(self):
        text = "https://a.io https://b.io https://c.io"
        # more than two links in a short message
        assert suspicion_score(text, now=NOW) == 5

    def test_score_is_bounded(self):
        created = NOW - datetime.timedelta(hours=1)
        text = "***porn*** " + " ".join(f"https://x{i}.io" for i in range(6))
        score = suspicion_score(text, created_at=created, now=NOW)
        assert 0 <= score <= 100

    @pytest.mark.parametrize(
        "base, extra",
        [
            ("see you at the park later", " porn"),
            ("see you at the park later", " p0rn"),
            ("see you at the park later", " ***look***"),
        ],
    )
    def test_adding_signals_never_lowers_score(self, base, extra):
        assert suspicion_score(base + extra, now=NOW) >= suspicion_score(base, now=NOW)


class TestBypassDetectionWithLinks:
    @pytest.mark.parametrize("text", ["https://example.com", "see www.essex.ac.uk/news", "docs at https://sexton.dev/guide"])
    def test_links_alone_are_not_bypass_attempts(self, text):
        assert detect_bypass_attempt(text) is False

    def test_obfuscation_next_to_a_link_is_still_caught(self):
        assert detect_bypass_attempt("p0rn https://example.com") is True

    def test_plain_link_keeps_a_zero_score(self):
        assert suspicion_score("check this out https://example.com", now=NOW) == 0
