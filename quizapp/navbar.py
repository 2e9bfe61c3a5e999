"""
Navigation header shared by every QuizApp message.
"""
import discord

NAVBAR_TITLE = "QuizApp"
NAVBAR_MENU = ("Profile", "Settings", "Logout")
NAVBAR_AVATAR_URL = "https://img.daisyui.com/images/stock/photo-1534528741775-53994a69daeb.webp"
NAVBAR_COLOR = 0x1E293B


def apply_navbar(embed: discord.Embed) -> discord.Embed:
    """Decorate an embed with the brand header and menu footer."""
    embed.set_author(name=NAVBAR_TITLE, icon_url=NAVBAR_AVATAR_URL)
    embed.set_footer(text=" • ".join(NAVBAR_MENU))
    return embed
