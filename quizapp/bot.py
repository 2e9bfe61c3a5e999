import logging
import os
from typing import Optional

import aiohttp
import discord
from discord.ext import commands

from .config_manager import ConfigManager
from .navbar import apply_navbar, NAVBAR_TITLE
from .quiz_controller import QuizController
from .quiz_view import QuizView

logger = logging.getLogger(__name__)


class QuizBot(commands.Bot):
    """Discord bot that runs trivia quizzes"""

    def __init__(self, config=None):
        # Slash commands only need the guilds intent
        intents = discord.Intents.none()
        intents.guilds = True

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}

        self.config_manager: Optional[ConfigManager] = None
        self.quiz_controller: Optional[QuizController] = None
        self.http_session: Optional[aiohttp.ClientSession] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")

            self.config_manager = ConfigManager()
            config_errors = self.config_manager.apply_config(self.app_config)
            for error in config_errors:
                logger.warning(f"Configuration value ignored: {error}")

            self.http_session = aiohttp.ClientSession()
            self.quiz_controller = QuizController(self.config_manager, http_session=self.http_session)

            await self.setup_commands()

            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    async def setup_commands(self):
        """Register all slash commands"""
        @self.tree.command(name="help", description="Display available commands and their descriptions")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="quiz", description="Start a trivia quiz in this channel")
        async def quiz_command(interaction: discord.Interaction):
            await self.handle_quiz(interaction)

        @self.tree.command(name="stop", description="Stop the current quiz session")
        async def stop_command(interaction: discord.Interaction):
            await self.handle_stop(interaction)

        @self.tree.command(name="score", description="Show the score of the current quiz")
        async def score_command(interaction: discord.Interaction):
            await self.handle_score(interaction)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Bot is in {len(self.guilds)} guilds")

        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def close(self):
        """Close the shared HTTP session along with the Discord connection"""
        if self.http_session is not None and not self.http_session.closed:
            await self.http_session.close()
        await super().close()

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        try:
            embed = discord.Embed(
                title=f"📚 {NAVBAR_TITLE} Commands",
                description="Answer multiple-choice trivia questions fetched from the Trivia API.",
                color=0x0099ff
            )
            embed.add_field(
                name="🎯 Quiz",
                value=(
                    "`/quiz` - Start a quiz in this channel\n"
                    "`/stop` - Stop the current quiz\n"
                    "`/score` - Show the current score"
                ),
                inline=False
            )
            embed.add_field(
                name="🎮 How to play",
                value=(
                    "Pick an answer, press **Reveal Answer** to lock it in, "
                    "then press **Next** to move on."
                ),
                inline=False
            )
            embed.add_field(
                name="⚙️ Settings",
                value=self.config_manager.get_settings_summary(),
                inline=False
            )
            await interaction.response.send_message(embed=apply_navbar(embed))

        except discord.HTTPException as e:
            logger.error(f"Failed to send help message: {e}")

    async def handle_quiz(self, interaction: discord.Interaction):
        """Handle /quiz command: load questions and post the first one"""
        channel_id = interaction.channel_id
        engine = None
        try:
            if self.quiz_controller.has_active_session(channel_id):
                await self.send_error_response(
                    interaction,
                    "A quiz is already running in this channel. Use `/stop` to end it first.",
                    "❌ Quiz Already Running"
                )
                return

            # Fetching can outlast the 3 second interaction deadline
            await interaction.response.defer(thinking=True)

            result = await self.quiz_controller.start_quiz(channel_id, interaction.user.id)
            engine = result.get('engine')

            if not result['success']:
                if engine is not None and not engine.is_closed:
                    embed = self.quiz_controller.build_state_embed(engine)
                    await interaction.followup.send(embed=embed)
                else:
                    await self.send_error_response(interaction, result['user_message'], "❌ Quiz Not Started")
                return

            view = QuizView(
                self.quiz_controller,
                channel_id,
                interaction.user.id,
                engine,
                timeout=self.config_manager.get_view_timeout()
            )
            embed = self.quiz_controller.build_question_embed(engine)
            view.message = await interaction.followup.send(embed=embed, view=view, wait=True)

        except discord.HTTPException as e:
            logger.error(f"Discord error in quiz command for channel {channel_id}: {e}")
            self._stop_own_quiz(channel_id, engine)
        except Exception as e:
            logger.error(f"Error in quiz command for channel {channel_id}: {e}", exc_info=True)
            self._stop_own_quiz(channel_id, engine)
            await self.send_error_response(interaction, "Failed to start quiz", "❌ Quiz Start Error")

    def _stop_own_quiz(self, channel_id, engine):
        # Another /quiz may have claimed the channel; leave its session alone
        if engine is not None:
            self.quiz_controller.stop_quiz(channel_id, engine=engine)

    async def handle_stop(self, interaction: discord.Interaction):
        """Handle /stop command"""
        try:
            result = self.quiz_controller.stop_quiz(interaction.channel_id)

            if result['success']:
                progress = result['session_info']
                embed = discord.Embed(
                    title="🛑 Quiz Stopped",
                    description=(
                        f"Stopped after {progress['answered']} of {progress['total_questions']} questions.\n"
                        f"Score: {progress['score']}"
                    ),
                    color=0xff9900
                )
                await interaction.response.send_message(embed=apply_navbar(embed))
            else:
                await self.send_error_response(interaction, result['user_message'], "❌ No Active Quiz")

        except discord.HTTPException as e:
            logger.error(f"Failed to send stop response: {e}")

    async def handle_score(self, interaction: discord.Interaction):
        """Handle /score command"""
        try:
            embed = self.quiz_controller.build_status_embed(interaction.channel_id)
            await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            logger.error(f"Failed to send score response: {e}")

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send an ephemeral error embed, as a followup if the response was already used"""
        embed = discord.Embed(title=title, description=message, color=0xff0000)
        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send error response to user")


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = QuizBot(config)

    try:
        logger.info("Starting QuizApp bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
