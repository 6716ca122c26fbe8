from __future__ import annotations

import collections
import itertools
import logging
import unittest.mock
from asyncio import AbstractEventLoop
from collections.abc import Iterable
from contextlib import contextmanager
from functools import cached_property

import discord
from aiohttp import ClientSession
from discord.ext.commands import Context
from pydis_core.async_stats import AsyncStatsClient

from botspam.bot import Bot

# Keep test output readable; `assertLogs` lowers the level again where a test needs the records.
for logger in logging.Logger.manager.loggerDict.values():
    if isinstance(logger, logging.Logger):
        logger.setLevel(logging.CRITICAL)


class DiscordMock:
    """
    Base for mocks restricted to the attributes of a discord.py object, given as `spec_set`.

    Attributes which are coroutine functions on `spec_set` become `AsyncMock`s, everything else a plain `MagicMock`.
    """

    discord_id = itertools.count(0)
    spec_set = None

    def __init__(self, **kwargs):
        # Mock reserves `name` for its own repr, so it's set after construction.
        name = kwargs.pop("name", None)
        super().__init__(spec_set=self.spec_set, **kwargs)

        if name:
            self.name = name

    def _get_child_mock(self, **kw):
        if kw.get("_new_name") in self.__dict__["_spec_asyncs"]:
            return unittest.mock.AsyncMock(**kw)
        return unittest.mock.MagicMock(**kw)


guild_instance = discord.Guild(
    data={"id": 1, "name": "guild", "owner_id": 1, "description": "where the moderators live"},
    state=unittest.mock.MagicMock(),
)


class MockGuild(DiscordMock, unittest.mock.Mock):
    """A `Mock` restricted to the attributes of a `discord.Guild`."""
    spec_set = guild_instance

    def __init__(self, **kwargs) -> None:
        super().__init__(**collections.ChainMap(kwargs, {"id": next(self.discord_id), "members": []}))


role_instance = discord.Role(guild=guild_instance, state=unittest.mock.MagicMock(), data={"name": "role", "id": 1})


class MockRole(DiscordMock, unittest.mock.Mock):
    """A `Mock` restricted to the attributes of a `discord.Role`."""
    spec_set = role_instance

    def __init__(self, **kwargs) -> None:
        super().__init__(**collections.ChainMap(kwargs, {"id": next(self.discord_id), "name": "role", "position": 1}))


member_instance = discord.Member(
    data={"user": "lemon", "roles": [1], "flags": 2}, guild=guild_instance, state=unittest.mock.MagicMock()
)


class MockMember(DiscordMock, unittest.mock.Mock):
    """A `Mock` restricted to the attributes of a `discord.Member`, holding `@everyone` plus `roles`."""
    spec_set = member_instance

    def __init__(self, roles: Iterable[MockRole] | None = None, **kwargs) -> None:
        super().__init__(**collections.ChainMap(kwargs, {"name": "member", "id": next(self.discord_id), "bot": False}))

        self.roles = [MockRole(name="@everyone", id=0), *(roles or ())]
        if "mention" not in kwargs:
            self.mention = f"@{self.name}"


user_instance = discord.User(
    data=unittest.mock.MagicMock(get=unittest.mock.Mock(side_effect={"accent_color": 0}.get)),
    state=unittest.mock.MagicMock(),
)


class MockUser(DiscordMock, unittest.mock.Mock):
    """A `Mock` restricted to the attributes of a `discord.User`, such as the author of a direct message."""
    spec_set = user_instance

    def __init__(self, **kwargs) -> None:
        super().__init__(**collections.ChainMap(kwargs, {"name": "user", "id": next(self.discord_id), "bot": False}))

        if "mention" not in kwargs:
            self.mention = f"@{self.name}"


def _get_mock_loop() -> unittest.mock.Mock:
    """Return a mocked event loop which closes the coroutines handed to `create_task`."""
    loop = unittest.mock.create_autospec(spec=AbstractEventLoop, spec_set=True)

    def create_task(coroutine, **_):
        coroutine.close()
        return unittest.mock.Mock()

    loop.create_task.side_effect = create_task
    return loop


class MockBot(DiscordMock, unittest.mock.MagicMock):
    """A `MagicMock` restricted to the attributes of our `Bot`, with a mocked statsd client."""
    spec_set = Bot(
        command_prefix=unittest.mock.MagicMock(),
        loop=_get_mock_loop(),
        http_session=unittest.mock.MagicMock(),
        allowed_roles=[1],
        guild_id=1,
        intents=discord.Intents.all(),
    )

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.add_cog = unittest.mock.AsyncMock()

    @cached_property
    def loop(self) -> unittest.mock.Mock:
        return _get_mock_loop()

    @cached_property
    def http_session(self) -> unittest.mock.Mock:
        return unittest.mock.create_autospec(spec=ClientSession, spec_set=True)

    @cached_property
    def stats(self) -> unittest.mock.Mock:
        return unittest.mock.create_autospec(spec=AsyncStatsClient, spec_set=True)


text_channel_instance = discord.TextChannel(
    state=unittest.mock.MagicMock(),
    guild=unittest.mock.MagicMock(),
    data={"id": 1, "type": 0, "name": "channel", "parent_id": 1234567890, "position": 1},
)


class MockTextChannel(DiscordMock, unittest.mock.Mock):
    """A `Mock` restricted to the attributes of a `discord.TextChannel`."""
    spec_set = text_channel_instance

    def __init__(self, **kwargs) -> None:
        super().__init__(**collections.ChainMap(kwargs, {"id": next(self.discord_id), "name": "channel"}))

        if "mention" not in kwargs:
            self.mention = f"#{self.name}"

    @cached_property
    def guild(self) -> MockGuild:
        return MockGuild()


dm_channel_instance = discord.DMChannel(
    me=unittest.mock.MagicMock(),
    state=unittest.mock.MagicMock(),
    data={"id": 1, "recipients": [unittest.mock.MagicMock()]},
)


class MockDMChannel(DiscordMock, unittest.mock.Mock):
    """A `Mock` restricted to the attributes of a `discord.DMChannel`; it never belongs to a guild."""
    spec_set = dm_channel_instance

    def __init__(self, **kwargs) -> None:
        default_kwargs = {"id": next(self.discord_id), "recipient": MockUser(), "me": MockUser(), "guild": None}
        super().__init__(**collections.ChainMap(kwargs, default_kwargs))


message_channel = unittest.mock.MagicMock()
message_channel.type = discord.ChannelType.text
message_instance = discord.Message(
    state=unittest.mock.MagicMock(),
    channel=message_channel,
    data={
        "id": 1,
        "attachments": [],
        "embeds": [],
        "edited_timestamp": "2019-10-14T15:33:48+00:00",
        "type": 0,
        "pinned": False,
        "mention_everyone": False,
        "tts": False,
        "content": "content",
        "nonce": None,
    },
)


class MockMessage(DiscordMock, unittest.mock.MagicMock):
    """A `MagicMock` restricted to the attributes of a `discord.Message`, sent in a guild channel by default."""
    spec_set = message_instance

    def __init__(self, **kwargs) -> None:
        super().__init__(**collections.ChainMap(kwargs, {"attachments": []}))
        self.author = kwargs.get("author", MockMember())
        self.channel = kwargs.get("channel", MockTextChannel())


def make_direct_message(author: MockUser | MockMember, content: str) -> MockMessage:
    """Give a MockMessage sent to the bot in direct messages."""
    return MockMessage(author=author, content=content, channel=MockDMChannel(recipient=author), guild=None)


context_instance = Context(message=unittest.mock.MagicMock(), prefix="!", bot=MockBot(), view=None)


class MockContext(DiscordMock, unittest.mock.MagicMock):
    """A `MagicMock` restricted to the attributes of a command `Context`."""
    spec_set = context_instance

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.me = kwargs.get("me", MockMember())
        self.bot = kwargs.get("bot", MockBot())

        self.message = kwargs.get("message", MockMessage(guild=self.guild))
        self.author = kwargs.get("author", self.message.author)
        self.channel = kwargs.get("channel", self.message.channel)
        self.guild = kwargs.get("guild", self.channel.guild)


@contextmanager
def no_create_task():
    """Close coroutines scheduled with pydis_core's `create_task` instead of running them."""
    def side_effect(coro, *_, **__):
        coro.close()

    with unittest.mock.patch("pydis_core.utils.scheduling.create_task") as create_task:
        create_task.side_effect = side_effect
        yield
