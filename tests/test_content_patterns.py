import pytest

from modwatch.moderation import content_patterns as patterns


class TestTermLists:
    def test_explicit_and_partial_halves(self):
        assert patterns.EXPLICIT_TERMS + patterns.PARTIAL_TERMS == patterns.BLOCKED_TERMS
        assert len(patterns.EXPLICIT_TERMS) == len(patterns.BLOCKED_TERMS) // 2

    def test_keyword_regex_matches_whole_words_only(self):
        assert patterns.KEYWORD_REGEX.search("check out this PORN site")
        assert patterns.KEYWORD_REGEX.search("pornographic") is None

    def test_partial_regex_uses_second_half(self):
        assert patterns.PARTIAL_REGEX.search("looking for an escort")
        assert patterns.PARTIAL_REGEX.search("porn") is None


class TestExtraction:
    def test_find_urls(self):
        text = "see https://example.com/a and www.test.org/b, not example.net"
        assert patterns.find_urls(text) == ["https://example.com/a", "www.test.org/b,"]

    def test_find_invite_codes(self):
        text = "join discord.gg/abc123 or https://discord.com/invite/Xyz-9"
        assert patterns.find_invite_codes(text) == ["abc123", "Xyz-9"]

    def test_count_mentions(self):
        assert patterns.count_mentions("<@1> <@!2> <@&3> @everyone") == 3
        assert patterns.count_mentions("") == 0


class TestDomains:
    def test_domain_of(self):
        assert patterns.domain_of("https://Sub.Example.com:8080/x") == "sub.example.com"
        assert patterns.domain_of("not a url") == ""

    @pytest.mark.parametrize(
        "url",
        ["https://pornhub.com/view", "https://www.xvideos.com", "http://cdn.xhamster.com/a"],
    )
    def test_adult_sites(self, url):
        assert patterns.is_adult_site(url)
        assert patterns.is_suspicious_url(url)

    def test_lookalike_is_not_adult(self):
        assert not patterns.is_adult_site("https://notpornhub.com")

    def test_phishing_and_malware(self):
        assert patterns.is_phishing_site("https://discord-nitro.com/claim")
        assert patterns.is_malware_site("http://virus.com")
        assert not patterns.is_suspicious_url("https://github.com")

    def test_whitelist(self):
        whitelist = ["youtube.com", "github.com"]

        assert patterns.is_whitelisted_url("https://www.youtube.com/watch?v=1", whitelist)
        assert patterns.is_whitelisted_url("https://music.youtube.com", whitelist)
        assert patterns.is_whitelisted_url("www.github.com/user", whitelist)
        assert not patterns.is_whitelisted_url("https://evil-youtube.com", whitelist)


class TestFirstBlockedTerm:
    def test_exact_match(self):
        assert patterns.first_blocked_term("badword", ["badword"]) == "badword"

    def test_containment_matches_inside_longer_words(self):
        assert patterns.first_blocked_term("class", ["ass"]) == "ass"

    def test_no_match(self):
        assert patterns.first_blocked_term("hello", ["ass", "foo"]) is None
