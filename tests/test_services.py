from pathlib import Path
from types import SimpleNamespace

from modwatch.bot.services import BotServices, build_services, get_services
from modwatch.configuration.app_configuration import AppConfig


def test_build_services_uses_data_dir(tmp_path: Path):
    config = AppConfig(tmp_path / "missing.yml")

    services = build_services(config, data_dir=tmp_path)

    assert isinstance(services, BotServices)
    assert services.logging_manager.config_store.path == tmp_path / "logging_config.json"
    assert services.policy_store.words_store.path == tmp_path / "blocked_words.json"
    assert services.pipeline.violation_handler is services.violation_handler
    assert services.pipeline.spam_tracker is services.spam_tracker


def test_services_persist_into_data_dir(tmp_path: Path):
    services = build_services(AppConfig(tmp_path / "missing.yml"), data_dir=tmp_path)

    services.logging_manager.get_config(1)
    services.policy_store.update_blocked_words(1, enabled=True)

    assert (tmp_path / "logging_config.json").exists()
    assert (tmp_path / "blocked_words.json").exists()


def test_get_services_returns_attached_services():
    attached = object()
    bot = SimpleNamespace(services=attached)

    assert get_services(bot) is attached
