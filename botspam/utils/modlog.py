from datetime import UTC, datetime

import discord

from botspam.bot import Bot
from botspam.constants import Channels, Roles


async def send_log_message(
    bot: Bot,
    icon_url: str | None,
    colour: discord.Colour | int,
    title: str | None,
    text: str,
    *,
    channel_id: int = Channels.mod_log,
    ping_moderators: bool = False,
    footer: str | None = None,
) -> discord.Message:
    """Generate log embed and send to logging channel."""
    await bot.wait_until_guild_available()
    # Truncate string directly here to avoid removing newlines
    embed = discord.Embed(
        description=text[:4093] + "..." if len(text) > 4096 else text
    )

    if title and icon_url:
        embed.set_author(name=title, icon_url=icon_url)
    elif title:
        raise ValueError("title cannot be set without icon_url")
    elif icon_url:
        raise ValueError("icon_url cannot be set without title")

    embed.colour = colour
    embed.timestamp = datetime.now(tz=UTC)

    if footer:
        embed.set_footer(text=footer)

    content = f"<@&{Roles.moderators}>" if ping_moderators else None

    channel = bot.get_channel(channel_id)
    return await channel.send(content=content, embed=embed)
