import asyncio

import aiohttp
import discord
from discord.ext import commands

import botspam
from botspam import constants
from botspam.bot import Bot, StartupError
from botspam.log import get_logger, setup_sentry

LOCALHOST = "127.0.0.1"


async def main() -> None:
    """Entry async method for starting the bot."""
    if not constants.Bot.token:
        raise StartupError(ValueError("BOT_TOKEN is not set."))

    setup_sentry()

    statsd_url = constants.Stats.statsd_host
    if constants.DEBUG_MODE:
        # Since statsd is UDP, there are no errors for sending to a down port.
        # For this reason, setting the statsd host to 127.0.0.1 for development
        # will effectively disable stats.
        statsd_url = LOCALHOST

    allowed_roles = list({discord.Object(id_) for id_ in constants.MODERATION_ROLES})
    intents = discord.Intents.default()
    intents.members = True
    intents.message_content = True
    intents.dm_typing = False
    intents.dm_reactions = False

    async with aiohttp.ClientSession() as session:
        botspam.instance = Bot(
            guild_id=constants.Guild.id,
            http_session=session,
            statsd_url=statsd_url,
            command_prefix=commands.when_mentioned_or(constants.Bot.prefix),
            case_insensitive=True,
            allowed_mentions=discord.AllowedMentions(everyone=False, roles=allowed_roles),
            intents=intents,
            allowed_roles=allowed_roles,
        )
        async with botspam.instance as _bot:
            await _bot.start(constants.Bot.token)


try:
    asyncio.run(main())
except StartupError as e:
    message = "Unknown Startup Error Occurred."
    if isinstance(e.exception, ValueError):
        message = "Could not find a bot token. Add `BOT_TOKEN=<token>` to your `.env` file."

    # The exception is logged with an empty message so the actual message is visible at the bottom
    log = get_logger("botspam")
    log.fatal("", exc_info=e.exception)
    log.fatal(message)

    exit(69)
