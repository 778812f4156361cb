"""
modwatch
========

A Discord bot that screens guild messages against content and spam policies,
enforces violations (delete, warn, timeout) and writes an audit log of
moderation and membership events to a per-guild log channel.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Locate the directory holding ``config/`` and ``.env``.

    ``MODWATCH_HOME`` wins when set. A frozen build uses the directory of its
    executable; a source checkout uses the repository root.
    """
    if home := os.getenv("MODWATCH_HOME"):
        return Path(home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()

import asyncio
import discord
from dotenv import load_dotenv

from modwatch.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Read ``BASE_DIR/.env`` and return ``DISCORD_BOT_TOKEN``.

    Raises
    ------
    SystemExit
        When no token is configured.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("[STARTUP] DISCORD_BOT_TOKEN is not set; refusing to start")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for message screening (content) and the member audit events."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    intents.messages = True
    intents.message_content = True
    return intents


def load_cogs(bot: discord.Bot) -> None:
    from modwatch.bot.cogs import events_listener, message_listener

    for module in (message_listener, events_listener):
        module.setup(bot)
    logger.info("[STARTUP] Registered %d cogs", len(bot.cogs))


def log_policy_summary(services) -> None:
    """Write the effective global moderation settings to the log once at startup."""
    config = services.app_config
    spam = config.spam
    logger.info(
        "[STARTUP] max_mentions=%d allowed_link_channel=%s whitelisted_domains=%d",
        config.max_mentions,
        config.allowed_link_channel or "-",
        len(config.whitelisted_link_domains),
    )
    logger.info(
        "[STARTUP] link spam: %d links/%ss (%d for new accounts); rapid posting: %d msgs/%ss",
        spam.max_links,
        spam.window_seconds,
        spam.new_account_max_links,
        spam.rapid_max_messages,
        spam.rapid_window_seconds,
    )


def create_bot() -> discord.Bot:
    """Build the bot, attach the shared moderation services and register the cogs."""
    from modwatch.bot.services import build_services
    from modwatch.configuration.app_configuration import app_config

    bot = discord.Bot(intents=build_intents())
    bot.services = build_services(app_config, bot)
    log_policy_summary(bot.services)
    load_cogs(bot)
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    logger.info("[STARTUP] Connecting to Discord")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("[SHUTDOWN] Connection task cancelled")
    finally:
        logger.info("[SHUTDOWN] Discord connection ended")


async def shutdown_runtime(bot: discord.Bot | None = None) -> None:
    """Close the gateway connection and drop in-memory spam history."""
    if bot is None:
        return

    if not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("[SHUTDOWN] Failed to close the Discord client: %s", exc)

    services = getattr(bot, "services", None)
    if services is not None:
        services.spam_tracker.reset()
    logger.info("[SHUTDOWN] Complete")


async def async_main() -> int:
    token = load_environment()

    try:
        bot = create_bot()
    except Exception as exc:
        logger.critical("[STARTUP] Could not build the bot: %s", exc)
        return 1

    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("[RUNTIME] Bot stopped with an error: %s", exc)
        return 1
    finally:
        await shutdown_runtime(bot)
    return 0


def main() -> int:
    """Console entry point; returns the process exit code."""
    os.chdir(BASE_DIR)
    logger.info("[STARTUP] modwatch starting from %s", BASE_DIR)
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("[SHUTDOWN] Interrupted by user")
        return 0
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1
    except Exception as exc:
        logger.critical("[RUNTIME] Unhandled error: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
