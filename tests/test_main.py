import asyncio
import os
import sys
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from modwatch import main
from modwatch.configuration.app_configuration import AppConfig


@pytest.fixture(autouse=True)
def _restore_env(monkeypatch):
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


class FakeBot:
    def __init__(self, *args, **kwargs) -> None:
        self.kwargs = kwargs
        self._start = AsyncMock(side_effect=asyncio.CancelledError())
        self._close = AsyncMock()
        self._closed = False
        self.cogs = []

    async def start(self, token: str) -> None:
        await self._start(token)

    def is_closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        self._closed = True
        await self._close()

    def add_cog(self, cog) -> None:
        self.cogs.append(cog)


def test_resolve_base_dir_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("MODWATCH_HOME", str(tmp_path))

    assert main.resolve_base_dir() == tmp_path.resolve()


def test_resolve_base_dir_compiled(tmp_path, monkeypatch):
    monkeypatch.delenv("MODWATCH_HOME", raising=False)
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "argv", [str(tmp_path / "modwatch.exe")])

    assert main.resolve_base_dir() == (tmp_path / "modwatch.exe").resolve().parent


def test_resolve_base_dir_source(monkeypatch):
    monkeypatch.delenv("MODWATCH_HOME", raising=False)
    monkeypatch.setattr(sys, "frozen", False, raising=False)
    monkeypatch.setattr(sys, "compiled", False, raising=False)

    assert main.resolve_base_dir() == main.Path(main.__file__).resolve().parents[2]


def test_load_environment_requires_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda **kwargs: None)
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)

    with pytest.raises(SystemExit) as exc:
        main.load_environment()

    assert exc.value.code == 1


def test_load_environment_returns_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda **kwargs: None)
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "abc")

    assert main.load_environment() == "abc"


def test_build_intents_enables_message_content_and_members():
    intents = main.build_intents()

    assert intents.message_content is True
    assert intents.members is True
    assert intents.guilds is True


def test_create_bot_attaches_services_and_cogs(monkeypatch, tmp_path):
    services = SimpleNamespace(
        app_config=AppConfig(tmp_path / "missing.yml"),
        logging_manager=MagicMock(),
        pipeline=MagicMock(),
        spam_tracker=MagicMock(),
    )
    monkeypatch.setattr(main.discord, "Bot", FakeBot)

    with patch("modwatch.bot.services.build_services", return_value=services) as build:
        bot = main.create_bot()

    build.assert_called_once()
    assert bot.services is services
    assert {type(cog).__name__ for cog in bot.cogs} == {"EventsListenerCog", "MessageListenerCog"}


@pytest.mark.asyncio
async def test_async_main_successful_shutdown(monkeypatch):
    bot = FakeBot()
    monkeypatch.setattr(main, "load_environment", lambda: "token")
    monkeypatch.setattr(main, "create_bot", lambda: bot)

    assert await main.async_main() == 0
    bot._start.assert_awaited_once_with("token")
    bot._close.assert_awaited_once()


@pytest.mark.asyncio
async def test_async_main_create_failure(monkeypatch):
    monkeypatch.setattr(main, "load_environment", lambda: "token")
    monkeypatch.setattr(main, "create_bot", MagicMock(side_effect=RuntimeError("bad config")))

    assert await main.async_main() == 1


@pytest.mark.asyncio
async def test_async_main_runtime_error(monkeypatch):
    bot = FakeBot()
    bot._start = AsyncMock(side_effect=RuntimeError("login failed"))
    monkeypatch.setattr(main, "load_environment", lambda: "token")
    monkeypatch.setattr(main, "create_bot", lambda: bot)

    assert await main.async_main() == 1
    bot._close.assert_awaited_once()


@pytest.mark.asyncio
async def test_shutdown_resets_spam_history():
    bot = FakeBot()
    bot.services = SimpleNamespace(spam_tracker=MagicMock())

    await main.shutdown_runtime(bot)

    bot._close.assert_awaited_once()
    bot.services.spam_tracker.reset.assert_called_once()


@pytest.mark.asyncio
async def test_shutdown_without_bot_is_noop():
    await main.shutdown_runtime(None)

def test_main_exit_codes(monkeypatch):
    monkeypatch.setattr(main.os, "chdir", lambda path: None)

    def run_with(exc):
        def fake_run(coro):
            coro.close()
            raise exc
        monkeypatch.setattr(main.asyncio, "run", fake_run)
        return main.main()

    assert run_with(KeyboardInterrupt()) == 0
    assert run_with(SystemExit(3)) == 3
    assert run_with(SystemExit("bad")) == 1
    assert run_with(RuntimeError("boom")) == 1
