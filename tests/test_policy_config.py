import json
from pathlib import Path

import pytest

from modwatch.configuration.key_value_store import MemoryStore
from modwatch.configuration.policy_config import (
    BlockedDomainsConfig,
    BlockedWordsConfig,
    PolicyConfigStore,
    extract_domain,
    get_domain_severity,
    get_severity_level,
)


@pytest.fixture()
def store() -> PolicyConfigStore:
    return PolicyConfigStore(MemoryStore(), MemoryStore())


class TestBlockedWordsConfig:
    def test_defaults(self):
        config = BlockedWordsConfig.from_dict(None)

        assert config.enabled is False
        assert config.blocked_words == []
        assert config.severity_levels == {"minor": [], "moderate": [], "severe": []}
        assert config.auto_warn is True
        assert config.auto_escalation is False
        assert config.escalation_thresholds == {"timeout": 3}
        assert config.bypass_admins is True

    def test_terms_are_lowercased_and_stripped(self):
        config = BlockedWordsConfig.from_dict({"blocked_words": [" Foo ", "", "BAR"], "whitelist": ["Ok"]})

        assert config.blocked_words == ["foo", "bar"]
        assert config.whitelist == ["ok"]

    def test_invalid_threshold_keeps_default(self):
        config = BlockedWordsConfig.from_dict({"escalation_thresholds": {"timeout": "many"}})

        assert config.escalation_thresholds == {"timeout": 3}


class TestBlockedDomainsConfig:
    def test_allowed_channels_are_ints(self):
        config = BlockedDomainsConfig.from_dict({"allowed_channels": ["10", 20, "nope"]})

        assert config.allowed_channels == [10, 20]

    def test_delete_messages_defaults_true(self):
        assert BlockedDomainsConfig.from_dict({}).delete_messages is True


class TestSeverity:
    def test_lookup_by_tier(self):
        config = BlockedWordsConfig.from_dict({"severity_levels": {"severe": ["slur"], "moderate": ["rude"]}})

        assert get_severity_level("slur", config) == "severe"
        assert get_severity_level("RUDE", config) == "moderate"
        assert get_severity_level("other", config) == "minor"
        assert get_severity_level(None, config) == "minor"

    def test_domain_severity(self):
        config = BlockedDomainsConfig.from_dict({"severity_levels": {"severe": ["bad.example"]}})

        assert get_domain_severity("bad.example", config) == "severe"
        assert get_domain_severity("fine.example", config) == "minor"


class TestExtractDomain:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://www.Example.com/path", "example.com"),
            ("http://sub.example.org", "sub.example.org"),
            ("www.example.net/page", "example.net"),
            ("", None),
            ("https://", None),
        ],
    )
    def test_extract(self, url, expected):
        assert extract_domain(url) == expected


class TestPolicyConfigStore:
    def test_guild_entry_then_global_then_defaults(self, store):
        store.words_store.set("global", {"enabled": True, "blocked_words": ["globalword"]})
        store.words_store.set("1", {"enabled": True, "blocked_words": ["guildword"]})

        assert store.blocked_words(1).blocked_words == ["guildword"]
        assert store.blocked_words(2).blocked_words == ["globalword"]

        store.words_store.delete("global")
        assert store.blocked_words(2).enabled is False

    def test_update_merges_and_persists(self, store):
        assert store.update_blocked_words(5, enabled=True, blocked_words=["Foo"]) is True
        assert store.update_blocked_words(5, auto_escalation=True) is True

        config = store.blocked_words(5)
        assert config.enabled is True
        assert config.blocked_words == ["foo"]
        assert config.auto_escalation is True

    def test_update_ignores_unknown_fields(self, store):
        store.update_blocked_domains(5, enabled=True, not_a_field=1)

        stored = store.domains_store.get("5")
        assert stored["enabled"] is True
        assert "not_a_field" not in stored

    def test_from_directory_reads_documents(self, tmp_path: Path):
        (tmp_path / "blocked_words.json").write_text(
            json.dumps({"7": {"enabled": True, "blocked_words": ["x"]}}), encoding="utf-8"
        )

        store = PolicyConfigStore.from_directory(tmp_path)

        assert store.blocked_words(7).blocked_words == ["x"]
        assert store.blocked_domains(7).enabled is False

    def test_lookup_sees_edits_made_after_startup(self, tmp_path: Path):
        words_path = tmp_path / "blocked_words.json"
        words_path.write_text("{}", encoding="utf-8")
        store = PolicyConfigStore.from_directory(tmp_path)
        assert store.blocked_words(100).enabled is False

        words_path.write_text(
            json.dumps({"100": {"enabled": True, "blocked_words": ["frog"]}}), encoding="utf-8"
        )

        config = store.blocked_words(100)
        assert config.enabled is True
        assert config.blocked_words == ["frog"]

    def test_own_updates_do_not_trigger_reload(self, tmp_path: Path):
        store = PolicyConfigStore.from_directory(tmp_path)
        store.update_blocked_words(3, enabled=True)

        assert store.words_store.refresh_if_changed() is False
        assert store.blocked_words(3).enabled is True
