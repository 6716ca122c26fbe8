from discord import Embed
from discord.ext.commands import Cog
from pydis_core.utils import scheduling

from botspam.bot import Bot
from botspam.constants import Channels, DEBUG_MODE, MassPM
from botspam.log import get_logger

log = get_logger(__name__)


class Logging(Cog):
    """Debug logging module."""

    def __init__(self, bot: Bot):
        self.bot = bot

        scheduling.create_task(self.startup_greeting())

    async def startup_greeting(self) -> None:
        """Announce our presence, and the mass PM limit in use, to the configured devlog channel."""
        await self.bot.wait_until_guild_available()
        log.info("Bot connected!")

        state = "enabled" if MassPM.enabled else "disabled"
        embed = Embed(
            description=(
                f"Connected! Bot spam filtering starts {state}, "
                f"with a limit of {MassPM.repeats} identical messages in {MassPM.watch_time} seconds."
            )
        )

        if not DEBUG_MODE:
            await self.bot.get_channel(Channels.dev_log).send(embed=embed)


async def setup(bot: Bot) -> None:
    """Load the Logging cog."""
    await bot.add_cog(Logging(bot))
