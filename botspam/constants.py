"""
Loads bot configuration from environment variables and `.env` files.

By default, the values defined in the classes are used, these can be overridden by an env var with the same name.

`.env` and `.env.server` files are used to populate env vars, if present.
"""
import os

from pydantic import Field
from pydantic_settings import BaseSettings


class EnvConfig(
    BaseSettings,
    env_file=(".env.server", ".env"),
    env_file_encoding = "utf-8",
    env_nested_delimiter = "__",
    extra="ignore",
):
    """Our default configuration for models that should load from .env files."""


class _Miscellaneous(EnvConfig):
    debug: bool = True
    file_logs: bool = False


Miscellaneous = _Miscellaneous()


FILE_LOGS = Miscellaneous.file_logs
DEBUG_MODE = Miscellaneous.debug


class _Bot(EnvConfig, env_prefix="bot_"):

    prefix: str = "!"
    sentry_dsn: str = ""
    token: str = ""
    trace_loggers: str = "*"


Bot = _Bot()


class _Channels(EnvConfig, env_prefix="channels_"):

    dev_log: int = 622895325144940554
    mod_alerts: int = 473092532147060736
    mod_log: int = 282638479504965634


Channels = _Channels()


class _Roles(EnvConfig, env_prefix="roles_"):

    admins: int = 267628507062992896
    moderators: int = 831776746206265384
    mod_team: int = 267629731250176001
    owners: int = 267627879762755584


Roles = _Roles()


class _Guild(EnvConfig, env_prefix="guild_"):

    id: int = 267624335836053506

    moderation_roles: tuple[int, ...] = (Roles.admins, Roles.mod_team, Roles.moderators, Roles.owners)


Guild = _Guild()


class _MassPM(EnvConfig, env_prefix="mass_pm_"):

    # Off until a moderator runs `!botspam on`, unless overridden here.
    enabled: bool = False
    # Number of identical direct messages within `watch_time` seconds which triggers an alert.
    repeats: int = Field(default=10, ge=1)
    watch_time: int = Field(default=600, gt=0)
    # Moderators are not tracked at all when this is set.
    ignore_opers: bool = True
    # Seconds between two sweeps of stale message hashes.
    sweep_interval: float = Field(default=5, gt=0)
    ping_moderators: bool = False


MassPM = _MassPM()


def load_mass_pm() -> _MassPM:
    """Read the mass PM section again from the environment and `.env` files."""
    return _MassPM()


class _Stats(EnvConfig, env_prefix="stats_"):

    statsd_host: str = "graphite.default.svc.cluster.local"


Stats = _Stats()


class _Emojis(EnvConfig, env_prefix="emojis_"):

    check_mark: str = "\u2705"
    cross_mark: str = "\u274C"
    ok_hand: str = ":ok_hand:"


Emojis = _Emojis()


class Icons:
    """URLs to commonly used icons."""

    filtering = "https://cdn.discordapp.com/emojis/472472638594482195.png"

    botspam_disabled = "https://cdn.discordapp.com/emojis/470326273952972810.png"
    botspam_enabled = "https://cdn.discordapp.com/emojis/470326274213150730.png"


class Colours:
    """Colour codes, mostly used to set discord.Embed colours."""

    soft_green: int = 0x68c290
    soft_red: int = 0xcd6d6d


# Default role combinations
MODERATION_ROLES = Guild.moderation_roles


BOT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(BOT_DIR, os.pardir))
