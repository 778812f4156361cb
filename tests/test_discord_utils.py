"""Tests for discord_utils module."""

import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from modwatch.util.discord_utils import (
    PERMANENT_DURATION,
    bot_can_log_to,
    can_moderate_member,
    format_duration,
    has_elevated_permissions,
    is_ignored_author,
    safe_delete_message,
    safe_timeout_member,
    send_transient_message,
    truncate_text,
)


def perms(**flags):
    base = dict(administrator=False, manage_messages=False, manage_guild=False, moderate_members=False)
    base.update(flags)
    return SimpleNamespace(**base)


def make_member(member_id=1, top_role=1, owner_id=999, me_perms=None, me_top_role=10):
    me = SimpleNamespace(guild_permissions=me_perms or perms(moderate_members=True), top_role=me_top_role)
    guild = SimpleNamespace(me=me, owner_id=owner_id)
    member = MagicMock()
    member.id = member_id
    member.guild = guild
    member.top_role = top_role
    member.timeout_for = AsyncMock()
    return member


class TestFormatDuration:
    """Test the format_duration function."""

    def test_permanent_duration(self):
        assert format_duration(0) == PERMANENT_DURATION

    def test_single_units(self):
        assert format_duration(30) == "30 seconds"
        assert format_duration(60) == "1 minute"
        assert format_duration(600) == "10 minutes"
        assert format_duration(3600) == "1 hour"
        assert format_duration(86400 * 3) == "3 days"

    def test_two_largest_units(self):
        assert format_duration(5400) == "1 hour 30 minutes"
        assert format_duration(86400 + 3600 + 61) == "1 day 1 hour"


class TestTruncateText:
    def test_short_text_untouched(self):
        assert truncate_text("hello", 10) == "hello"

    def test_long_text_ends_with_ellipsis(self):
        result = truncate_text("x" * 50, 10)
        assert result == "xxxxxxx..."
        assert len(result) == 10


class TestAuthorChecks:
    def test_is_ignored_author(self):
        assert is_ignored_author(SimpleNamespace(bot=True)) is True
        assert is_ignored_author(SimpleNamespace(bot=False)) is False
        assert is_ignored_author(SimpleNamespace()) is False
        assert is_ignored_author(SimpleNamespace(bot=False, system=True)) is True
        assert is_ignored_author(MagicMock()) is False

    @pytest.mark.parametrize("flag", ["administrator", "manage_messages", "manage_guild"])
    def test_elevated_permissions(self, flag):
        member = SimpleNamespace(guild_permissions=perms(**{flag: True}))
        assert has_elevated_permissions(member) is True

    def test_plain_member_is_not_elevated(self):
        assert has_elevated_permissions(SimpleNamespace(guild_permissions=perms())) is False
        assert has_elevated_permissions(SimpleNamespace()) is False

    def test_mock_attributes_do_not_count_as_permissions(self):
        """Only real booleans grant permissions; auto-created mock attributes do not."""
        assert has_elevated_permissions(MagicMock()) is False


class TestCanModerateMember:
    def test_lower_member_can_be_moderated(self):
        assert can_moderate_member(make_member(top_role=1, me_top_role=10)) is True

    def test_equal_or_higher_role_cannot(self):
        assert can_moderate_member(make_member(top_role=10, me_top_role=10)) is False
        assert can_moderate_member(make_member(top_role=20, me_top_role=10)) is False

    def test_owner_cannot_be_moderated(self):
        assert can_moderate_member(make_member(member_id=5, owner_id=5)) is False

    def test_bot_needs_permission(self):
        assert can_moderate_member(make_member(me_perms=perms())) is False
        assert can_moderate_member(make_member(me_perms=perms(administrator=True))) is True

    def test_missing_guild_member(self):
        member = MagicMock()
        member.guild = SimpleNamespace(me=None)
        assert can_moderate_member(member) is False


class TestBotCanLogTo:
    def test_needs_send_and_embed(self):
        guild = SimpleNamespace(me=object())
        channel = MagicMock()

        channel.permissions_for.return_value = SimpleNamespace(send_messages=True, embed_links=True)
        assert bot_can_log_to(channel, guild) is True

        channel.permissions_for.return_value = SimpleNamespace(send_messages=True, embed_links=False)
        assert bot_can_log_to(channel, guild) is False

    def test_no_bot_member(self):
        assert bot_can_log_to(MagicMock(), SimpleNamespace(me=None)) is False


class TestSafeDeleteMessage:
    @pytest.mark.asyncio
    async def test_success(self):
        message = AsyncMock()
        assert await safe_delete_message(message) is True
        message.delete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_found(self):
        message = AsyncMock()
        message.delete = AsyncMock(side_effect=discord.NotFound(MagicMock(), "Not found"))
        assert await safe_delete_message(message) is False

    @pytest.mark.asyncio
    async def test_forbidden(self):
        message = AsyncMock()
        message.id = 12345
        message.delete = AsyncMock(side_effect=discord.Forbidden(MagicMock(), "Forbidden"))
        assert await safe_delete_message(message) is False

    @pytest.mark.asyncio
    async def test_general_exception(self):
        message = AsyncMock()
        message.id = 12345
        message.delete = AsyncMock(side_effect=Exception("Test error"))
        assert await safe_delete_message(message) is False


class TestSendTransientMessage:
    @pytest.mark.asyncio
    async def test_only_mentioned_user_is_pinged(self):
        channel = MagicMock()
        channel.send = AsyncMock()
        user = MagicMock()

        assert await send_transient_message(channel, "hi", 10, mention=user) is True

        args, kwargs = channel.send.call_args
        assert args == ("hi",)
        assert kwargs["delete_after"] == 10
        allowed = kwargs["allowed_mentions"]
        assert allowed.everyone is False
        assert allowed.roles is False
        assert allowed.users == [user]

    @pytest.mark.asyncio
    async def test_send_failure(self):
        channel = MagicMock()
        channel.send = AsyncMock(side_effect=discord.Forbidden(MagicMock(), "nope"))

        assert await send_transient_message(channel, "hi", 10) is False


class TestSafeTimeoutMember:
    @pytest.mark.asyncio
    async def test_times_out_moderatable_member(self):
        member = make_member()

        assert await safe_timeout_member(member, 10, "spam") is True
        member.timeout_for.assert_awaited_once_with(datetime.timedelta(minutes=10), reason="spam")

    @pytest.mark.asyncio
    async def test_skips_unmoderatable_member(self):
        member = make_member(top_role=50)

        assert await safe_timeout_member(member, 10, "spam") is False
        member.timeout_for.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_request_failure(self):
        member = make_member()
        member.timeout_for = AsyncMock(side_effect=discord.Forbidden(MagicMock(), "Forbidden"))

        assert await safe_timeout_member(member, 10, "spam") is False
