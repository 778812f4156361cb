"""Construction of the moderation and audit components shared by the cogs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from modwatch.audit.logging_manager import LoggingManager
from modwatch.configuration.app_configuration import AppConfig
from modwatch.configuration.key_value_store import JsonFileStore
from modwatch.configuration.policy_config import PolicyConfigStore
from modwatch.moderation.collaborators import (
    DiscordInviteResolver,
    DownstreamFeature,
    GuildPermissionResolver,
    JsonCustomCommands,
    JsonWarningStore,
)
from modwatch.moderation.moderation_pipeline import ModerationPipeline
from modwatch.moderation.spam_tracker import SpamTracker
from modwatch.moderation.violation_handler import ViolationHandler
from modwatch.util.logger import get_logger

logger = get_logger("services")


@dataclass(slots=True)
class BotServices:
    app_config: AppConfig
    policy_store: PolicyConfigStore
    logging_manager: LoggingManager
    warning_store: JsonWarningStore
    spam_tracker: SpamTracker
    violation_handler: ViolationHandler
    pipeline: ModerationPipeline


def build_services(
    app_config: AppConfig,
    client: Any = None,
    data_dir: Optional[Path] = None,
    downstream_features: Sequence[DownstreamFeature] = (),
) -> BotServices:
    """Wire every component against the JSON documents in ``data_dir``.

    Parameters
    ----------
    app_config:
        Loaded application configuration.
    client:
        The Discord bot; used for invite lookups and as the warning issuer.
    data_dir:
        Overrides ``app_config.data_dir``.
    downstream_features:
        Callables run for messages that pass every moderation check.
    """
    data_dir = Path(data_dir) if data_dir is not None else app_config.data_dir
    logger.info("[SERVICES] Using data directory %s", data_dir)

    policy_store = PolicyConfigStore.from_directory(data_dir)
    logging_manager = LoggingManager.from_directory(data_dir)
    warning_store = JsonWarningStore(JsonFileStore(data_dir / "warnings.json"))
    spam_tracker = SpamTracker(app_config.spam)
    violation_handler = ViolationHandler(
        warning_store,
        logging_manager,
        notice_seconds=app_config.violation_notice_seconds,
        client=client,
    )
    pipeline = ModerationPipeline(
        app_config=app_config,
        policy_store=policy_store,
        permission_resolver=GuildPermissionResolver(app_config.admin_role_ids, app_config.moderator_role_ids),
        violation_handler=violation_handler,
        spam_tracker=spam_tracker,
        invite_resolver=DiscordInviteResolver(),
        custom_commands=JsonCustomCommands(JsonFileStore(data_dir / "custom_commands.json")),
        downstream_features=downstream_features,
        client=client,
    )

    return BotServices(
        app_config=app_config,
        policy_store=policy_store,
        logging_manager=logging_manager,
        warning_store=warning_store,
        spam_tracker=spam_tracker,
        violation_handler=violation_handler,
        pipeline=pipeline,
    )


def get_services(bot: Any) -> BotServices:
    """Return the services attached to ``bot``, building them on first use."""
    services = getattr(bot, "services", None)
    if services is not None:
        return services

    from modwatch.configuration.app_configuration import app_config

    services = build_services(app_config, bot)
    bot.services = services
    return services
