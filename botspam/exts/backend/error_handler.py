import contextlib

from discord import Embed, Forbidden
from discord.ext.commands import Cog, Context, errors
from pydis_core.utils.error_handling import handle_forbidden_from_block
from sentry_sdk import new_scope

from botspam.bot import Bot
from botspam.constants import Colours
from botspam.log import get_logger

log = get_logger(__name__)

# Title and stat name for each kind of bad input, checked in order.
INPUT_ERRORS = (
    (errors.MissingRequiredArgument, "Missing required argument", "missing_required_argument"),
    (errors.TooManyArguments, "Too many arguments", "too_many_arguments"),
    (errors.BadArgument, "Bad argument", "bad_argument"),
    (errors.BadUnionArgument, "Bad argument", "bad_argument"),
)

BOT_MISSING_ERRORS = (errors.BotMissingPermissions, errors.BotMissingRole, errors.BotMissingAnyRole)


class ErrorHandler(Cog):
    """Replies to failed `botspam` commands and reports anything unexpected."""

    def __init__(self, bot: Bot):
        self.bot = bot

    @Cog.listener()
    async def on_command_error(self, ctx: Context, e: errors.CommandError) -> None:
        """
        Handle an error raised while parsing, checking or running a command.

        Errors marked as `handled` by a local handler are skipped. Unknown commands get no reply, since
        flooding accounts send all sorts of text to the bot in direct messages. Bad input is explained
        along with the command's help, and failed checks are explained where that's useful. A `Forbidden`
        caused by the invoker blocking the bot is dealt with by pydis_core. Everything else is reported
        as unexpected, except for disabled commands.
        """
        if hasattr(e, "handled"):
            log.trace(f"Command {ctx.command} had its error already handled locally; ignoring.")
            return

        summary = f"Command {ctx.command} invoked by {ctx.message.author} failed with {e.__class__.__name__}: {e}"

        if isinstance(e, errors.CommandNotFound):
            log.trace(summary)
        elif isinstance(e, errors.UserInputError):
            log.debug(summary)
            await self.handle_user_input_error(ctx, e)
        elif isinstance(e, errors.CheckFailure):
            log.debug(summary)
            await self.handle_check_failure(ctx, e)
        elif isinstance(e, errors.CommandInvokeError):
            await self.handle_invoke_error(ctx, e.original)
        elif isinstance(e, errors.DisabledCommand):
            log.debug(summary)
        else:
            await self.handle_unexpected_error(ctx, e)

    async def handle_invoke_error(self, ctx: Context, original: Exception) -> None:
        """Report what a command raised as unexpected, unless it's the invoker having blocked the bot."""
        if isinstance(original, Forbidden):
            with contextlib.suppress(Forbidden):
                # Reraises if the error isn't due to a block, in which case it's reported below.
                await handle_forbidden_from_block(original, ctx.message)
                return

        await self.handle_unexpected_error(ctx, original)

    async def handle_user_input_error(self, ctx: Context, e: errors.UserInputError) -> None:
        """Explain what was wrong with the arguments, then show the command's help."""
        for error_type, title, stat in INPUT_ERRORS:
            if isinstance(e, error_type):
                body = e.param.name if isinstance(e, errors.MissingRequiredArgument) else str(e)
                break
        else:
            title, stat = "Input error", "other_user_input_error"
            body = "Something about your input seems off. Check the arguments and try again."

        self.bot.stats.incr(f"errors.{stat}")
        await ctx.send(embed=Embed(title=title, colour=Colours.soft_red, description=body))
        await ctx.send_help(ctx.command)

    @staticmethod
    async def handle_check_failure(ctx: Context, e: errors.CheckFailure) -> None:
        """
        Tell the invoker why a check failed, when there's something they can act on.

        Members without a moderation role get no reply, so the commands stay out of sight for them.
        """
        if isinstance(e, BOT_MISSING_ERRORS):
            ctx.bot.stats.incr("errors.bot_permission_error")
            await ctx.send("Sorry, it looks like I don't have the permissions or roles I need to do that.")
        elif isinstance(e, errors.NoPrivateMessage):
            ctx.bot.stats.incr("errors.wrong_channel_or_dm_error")
            await ctx.send(e)

    @staticmethod
    async def handle_unexpected_error(ctx: Context, e: Exception) -> None:
        """Apologise in `ctx`, then log the error with the command's context attached for Sentry."""
        await ctx.send(
            f"Sorry, an unexpected error occurred. Please let us know!\n\n```{e.__class__.__name__}: {e}```"
        )
        ctx.bot.stats.incr("errors.unexpected")

        with new_scope() as scope:
            scope.user = {"id": ctx.author.id, "username": str(ctx.author)}
            scope.set_tag("command", ctx.command.qualified_name)
            scope.set_tag("message_id", ctx.message.id)
            scope.set_tag("channel_id", ctx.channel.id)
            scope.set_extra("full_message", ctx.message.content)

            log.error(f"Error executing command invoked by {ctx.message.author}: {ctx.message.content}", exc_info=e)


async def setup(bot: Bot) -> None:
    """Load the ErrorHandler cog."""
    await bot.add_cog(ErrorHandler(bot))
