import discord
from discord import Colour, Embed, Message
from discord.ext import tasks
from discord.ext.commands import Cog, Context, group, has_any_role
from pydantic import ValidationError

from botspam.bot import Bot
from botspam.constants import (
    Channels, Colours, Emojis, Guild as GuildConfig, Icons, MODERATION_ROLES, MassPM as MassPMConfig, load_mass_pm
)
from botspam.exts.mass_pm._detector import MassPMDetector
from botspam.exts.mass_pm._policy import PolicyConfig, Sender
from botspam.log import get_logger
from botspam.utils.modlog import send_log_message

log = get_logger(__name__)


class MassPMFilter(Cog):
    """Watches direct messages for the same content being sent over and over, as botnets do."""

    def __init__(self, bot: Bot):
        self.bot = bot
        self.settings = MassPMConfig
        self.policy = PolicyConfig.from_settings(self.settings)
        self.detector = MassPMDetector(lambda: self.policy, self.send_alert)

    async def cog_load(self) -> None:
        """Start sweeping stale message hashes."""
        self.sweep_stale.change_interval(seconds=self.settings.sweep_interval)
        self.sweep_stale.start()

    async def cog_unload(self) -> None:
        """Stop the sweeper when the cog unloads."""
        log.trace("Cog unload: canceling mass PM sweeper task.")
        self.sweep_stale.cancel()

    def is_privileged(self, user: discord.User | discord.Member) -> bool:
        """Whether `user` holds a moderation role in the guild."""
        guild = self.bot.get_guild(GuildConfig.id)
        if guild is None:
            return False

        member = guild.get_member(user.id)
        if member is None:
            return False

        return any(role.id in MODERATION_ROLES for role in member.roles)

    @Cog.listener()
    async def on_message(self, message: Message) -> None:
        """Count direct messages towards the mass PM flood threshold."""
        if message.author.bot or not message.content:
            return

        direct = message.guild is None
        sender = Sender(
            identity=message.author.name,
            origin=str(message.author.id),
            privileged=direct and self.is_privileged(message.author),
        )

        if await self.detector.on_private_message(sender, message.content, direct=direct):
            self.bot.stats.incr("mass_pm.recorded")

    async def send_alert(self, alert: str) -> None:
        """Post a triggered flood alert to the moderator alerts channel."""
        self.bot.stats.incr("mass_pm.alerts")
        try:
            await send_log_message(
                self.bot,
                Icons.filtering,
                Colour(Colours.soft_red),
                "Mass PM flood",
                alert,
                channel_id=Channels.mod_alerts,
                ping_moderators=self.settings.ping_moderators,
            )
        except discord.HTTPException as e:
            log.error(f"Failed to send mass PM flood alert: {e.status} {e.code}")

    @tasks.loop(seconds=5)
    async def sweep_stale(self) -> None:
        """Routinely evict message hashes which have not been seen within the watch window."""
        # An exception escaping the body would stop the loop, and with it all eviction.
        try:
            removed = self.detector.on_tick()
            if removed:
                self.bot.stats.incr("mass_pm.evicted", removed)
            self.bot.stats.gauge("mass_pm.tracked", self.detector.tracked)
        except Exception:
            log.exception("Failed to sweep stale message hashes.")

    @group(name="botspam", aliases=("massdm",), invoke_without_command=True, case_insensitive=True)
    async def botspam_group(self, ctx: Context) -> None:
        """Check or change the state of bot spam filtering."""
        await ctx.send_help(ctx.command)

    @botspam_group.command(name="on", aliases=("enable",))
    async def enable_command(self, ctx: Context) -> None:
        """Start counting identical direct messages."""
        await self._set_enabled(ctx, True)

    @botspam_group.command(name="off", aliases=("disable",))
    async def disable_command(self, ctx: Context) -> None:
        """Stop counting identical direct messages and forget everything counted so far."""
        await self._set_enabled(ctx, False)

    @botspam_group.command(name="status", aliases=("s",))
    async def status_command(self, ctx: Context) -> None:
        """Show the current bot spam filtering policy."""
        embed = Embed(
            colour=Colour.og_blurple(),
            title="Bot spam filtering",
            description=(
                f"**Enabled:** {self.policy.enabled}\n"
                f"**Limit:** {self.policy.repeat_threshold} identical messages "
                f"in {self.policy.watch_window} seconds\n"
                f"**Moderators exempt:** {self.policy.ignore_privileged}\n"
                f"**Tracked messages:** {self.detector.tracked}"
            )
        )
        await ctx.send(embed=embed)

    @botspam_group.command(name="rehash", aliases=("reload",))
    async def rehash_command(self, ctx: Context) -> None:
        """Reload the limit, the watch window and the moderator exemption from the configuration."""
        try:
            settings = load_mass_pm()
        except ValidationError as e:
            log.warning(f"Invalid mass PM settings on rehash, keeping the current ones: {e}")
            await ctx.send(f"{Emojis.cross_mark} Invalid mass PM settings, keeping the current ones.\n```{e}```")
            return

        self.settings = settings
        # The on/off state belongs to the commands, not to the configuration.
        self.policy = PolicyConfig.from_settings(settings).toggled(self.policy.enabled)
        self.sweep_stale.change_interval(seconds=settings.sweep_interval)

        log.info(f"Mass PM settings reloaded by {ctx.author}: {self.policy!r}")
        await ctx.send(
            f"{Emojis.check_mark} Reloaded; the limit is now {self.policy.repeat_threshold} "
            f"identical messages in {self.policy.watch_window} seconds."
        )

    async def _set_enabled(self, ctx: Context, enabled: bool) -> None:
        """Switch bot spam filtering on or off, and log the change to the mod log."""
        state = "enabled" if enabled else "disabled"
        if self.policy.enabled == enabled:
            await ctx.send(f"{Emojis.ok_hand} Bot spam filtering is already {state}.")
            return

        self.policy = self.policy.toggled(enabled)

        log.info(f"Bot spam filtering {state} by {ctx.author}.")
        await ctx.send(f"{Emojis.check_mark} Bot spam filtering {state}.")

        await send_log_message(
            self.bot,
            Icons.botspam_enabled if enabled else Icons.botspam_disabled,
            Colours.soft_green if enabled else Colours.soft_red,
            f"Bot spam filtering {state}",
            f"**Staffer:** {ctx.author.mention} {ctx.author} (`{ctx.author.id}`)",
        )

    async def cog_check(self, ctx: Context) -> bool:
        """Only allow moderators to invoke the commands in this cog."""
        return await has_any_role(*MODERATION_ROLES).predicate(ctx)
