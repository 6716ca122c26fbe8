from botspam.bot import Bot


async def setup(bot: Bot) -> None:
    """Load the MassPMFilter cog."""
    from botspam.exts.mass_pm._cog import MassPMFilter

    await bot.add_cog(MassPMFilter(bot))
