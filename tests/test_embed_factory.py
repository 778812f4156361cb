import datetime

import pytest

from modwatch.audit import embed_factory
from modwatch.datatypes.action_datatypes import (
    ActionKind,
    AutomodPayload,
    ChannelRef,
    CommandUsagePayload,
    GenericPayload,
    MemberJoinPayload,
    MemberLeavePayload,
    MessageDeletePayload,
    MessageEditPayload,
    ModerationPayload,
    TimeoutPayload,
    UserRef,
    WarningPayload,
)


def field_map(embed):
    return {field.name: field.value for field in embed.fields}


@pytest.fixture()
def user() -> UserRef:
    return UserRef(id=42, tag="alice#0001", mention="<@42>")


@pytest.fixture()
def channel() -> ChannelRef:
    return ChannelRef(id=7, name="general")


class TestSpecificLayouts:
    def test_message_edit(self, user, channel):
        embed = embed_factory.create_embed(
            ActionKind.MESSAGE_EDIT,
            MessageEditPayload(author=user, channel=channel, old_content="before", new_content="after"),
        )

        assert embed.title == "✏️ Message Edited"
        assert embed.color.value == 0xFFA500
        fields = field_map(embed)
        assert fields["👤 User ID"] == "`42`"
        assert fields["📝 Before"] == "```before```"
        assert fields["✅ After"] == "```after```"

    def test_message_edit_truncates_long_content(self, user, channel):
        embed = embed_factory.create_embed(
            ActionKind.MESSAGE_EDIT,
            MessageEditPayload(author=user, channel=channel, old_content="x" * 5000, new_content="y"),
        )

        assert len(field_map(embed)["📝 Before"]) == 806

    def test_message_delete_empty_content(self, user, channel):
        embed = embed_factory.create_embed(
            ActionKind.MESSAGE_DELETE,
            MessageDeletePayload(author=user, channel=channel, content=""),
        )

        assert embed.title == "🗑️ Message Deleted"
        assert field_map(embed)["📝 Content"] == "```*No content*```"

    def test_member_join_account_age(self, user):
        created = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(days=10, hours=1)
        embed = embed_factory.create_embed(
            ActionKind.MEMBER_JOIN,
            MemberJoinPayload(user=user, member_count=120, account_created_at=created),
        )

        fields = field_map(embed)
        assert fields["📅 Account Age"] == "10 days"
        assert fields["📊 Member Count"] == "**120**"
        assert embed.color.value == 0x00FF88

    def test_member_leave_lists_roles(self, user):
        embed = embed_factory.create_embed(
            ActionKind.MEMBER_LEAVE,
            MemberLeavePayload(user=user, member_count=5, roles=["Mods", "Helpers"]),
        )

        assert field_map(embed)["🎭 Roles"] == "Mods, Helpers"

    def test_warning_and_warning_added_share_layout(self, user):
        payload = WarningPayload(user=user, moderator=UserRef(tag="mod#1"), reason="spam", warning_id="abc")

        for kind in (ActionKind.WARNING, ActionKind.WARNING_ADDED):
            embed = embed_factory.create_embed(kind, payload)
            assert embed.title == "⚠️ Warning Issued"
            assert field_map(embed)["🆔 Warning ID"] == "`abc`"

    def test_ban_and_kick(self, user):
        payload = ModerationPayload(user=user, reason="raid")

        ban = embed_factory.create_embed(ActionKind.BAN, payload)
        kick = embed_factory.create_embed(ActionKind.KICK, payload)

        assert ban.title == "🔨 Member Banned"
        assert ban.color.value == 0x8B0000
        assert kick.title == "🦵 Member Kicked"
        assert field_map(kick)["👮 Moderator"] == "Unknown"

    def test_timeout_defaults_to_auto_moderation(self, user):
        embed = embed_factory.create_embed(
            ActionKind.TIMEOUT,
            TimeoutPayload(user=user, duration="1 hour", reason="spam"),
        )

        fields = field_map(embed)
        assert fields["👮 Moderator"] == "Auto-Moderation"
        assert fields["⏱️ Duration"] == "1 hour"

    def test_command_usage(self, user):
        embed = embed_factory.create_embed(
            ActionKind.COMMAND_USAGE,
            CommandUsagePayload(user=user, command_name="warn", channel_id=9),
        )

        assert embed.description == "Command: `warn`"
        assert field_map(embed)["📍 Channel"] == "<#9>"


class TestMissingFields:
    def test_missing_values_render_unknown(self):
        embed = embed_factory.create_embed(ActionKind.MESSAGE_DELETE, MessageDeletePayload())

        fields = field_map(embed)
        assert fields["👤 User ID"] == "`Unknown`"
        assert fields["💬 Channel"] == "Unknown"


class TestGenericFallback:
    def test_kind_without_layout(self, user, channel):
        embed = embed_factory.create_embed(
            ActionKind.AUTOMOD_ACTION,
            AutomodPayload(user=user, channel=channel, violation="ping_spam", action="delete"),
        )

        assert embed.title == "📋 AUTOMOD ACTION"
        assert embed.description == "Action performed"
        details = field_map(embed)["📊 Event Details"]
        assert details.startswith("```json\n")
        assert '"violation": "ping_spam"' in details

    def test_generic_payload_details_are_unwrapped(self):
        embed = embed_factory.create_embed(ActionKind.ROLE_CHANGE, GenericPayload(details={"role": "Mods"}))

        details = field_map(embed)["📊 Event Details"]
        assert '"role": "Mods"' in details
        assert '"details"' not in details

    def test_mismatched_payload_falls_back(self, user):
        embed = embed_factory.create_embed(ActionKind.BAN, WarningPayload(user=user))

        assert embed.title == "📋 BAN"

    def test_details_are_truncated(self):
        embed = embed_factory.create_embed(ActionKind.WEBHOOK_CREATE, GenericPayload(details={"blob": "z" * 5000}))

        assert len(field_map(embed)["📊 Event Details"]) <= 1000 + len("```json\n```")

    def test_every_kind_produces_an_embed(self):
        for kind in ActionKind:
            embed = embed_factory.create_embed(kind, GenericPayload())
            assert embed.title


def test_logging_error_embed():
    embed = embed_factory.logging_error_embed(ActionKind.BAN, RuntimeError("boom"))

    assert embed.title == "🚨 Logging Error"
    assert embed.description == "Failed to create log embed for action: `ban`"
    assert field_map(embed)["Error"] == "```boom```"
