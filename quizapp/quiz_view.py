"""
Interactive answer buttons for a running quiz.
"""
import logging
from typing import Optional

import discord

from .quiz_controller import QuizController, SessionNotFoundError
from .quiz_engine import QuizEngine

logger = logging.getLogger(__name__)

# Discord allows 5 rows of 5 components; the last row holds the controls
MAX_OPTION_ROWS = 4
BUTTONS_PER_ROW = 5
MAX_LABEL_LENGTH = 80


class AnswerButton(discord.ui.Button):
    """One selectable answer option."""

    def __init__(self, option: str, index: int, engine: QuizEngine):
        question = engine.current_question
        if engine.is_answered:
            if question.is_correct(option):
                style = discord.ButtonStyle.success
            elif option == engine.selected_answer:
                style = discord.ButtonStyle.danger
            else:
                style = discord.ButtonStyle.secondary
        elif option == engine.selected_answer:
            style = discord.ButtonStyle.primary
        else:
            style = discord.ButtonStyle.secondary

        super().__init__(
            label=option[:MAX_LABEL_LENGTH],
            style=style,
            custom_id=f"quizapp:answer:{index}",
            disabled=engine.is_answered,
            row=min(index // BUTTONS_PER_ROW, MAX_OPTION_ROWS - 1)
        )
        self.option = option

    async def callback(self, interaction: discord.Interaction):
        await self.view.handle_select(interaction, self.option)


class QuizView(discord.ui.View):
    """
    Buttons for the current question: the options, "Reveal Answer" and "Next".

    A fresh view is built after every click so the buttons always mirror
    the engine state.
    """

    def __init__(self, controller: QuizController, channel_id: int, owner_id: int,
                 engine: QuizEngine, timeout: Optional[float] = 300.0):
        super().__init__(timeout=timeout)
        self.controller = controller
        self.channel_id = channel_id
        self.owner_id = owner_id
        self.engine = engine
        self.message: Optional[discord.Message] = None

        for index, option in enumerate(engine.shuffled_answers):
            self.add_item(AnswerButton(option, index, engine))

        self.reveal_button.disabled = not engine.can_reveal()
        self.next_button.disabled = not engine.is_answered
        self.next_button.label = "Finish" if engine.is_last_question else "Next"

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id == self.owner_id:
            return True
        await interaction.response.send_message(
            "Only the player who started this quiz can answer.", ephemeral=True
        )
        return False

    @discord.ui.button(label="Reveal Answer", style=discord.ButtonStyle.primary, row=4)
    async def reveal_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._run_action(interaction, lambda: self.controller.reveal_answer(self.channel_id))

    @discord.ui.button(label="Next", style=discord.ButtonStyle.success, row=4)
    async def next_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._run_action(interaction, lambda: self.controller.advance(self.channel_id))

    async def handle_select(self, interaction: discord.Interaction, option: str):
        await self._run_action(interaction, lambda: self.controller.select_answer(self.channel_id, option))

    async def _run_action(self, interaction: discord.Interaction, action) -> None:
        try:
            changed = action()
        except SessionNotFoundError:
            logger.info(f"Ignoring click for ended quiz in channel {self.channel_id}")
            self.stop()
            await interaction.response.edit_message(content="This quiz has ended.", view=None)
            return

        if not changed:
            # Inert click; acknowledge without touching the message
            await interaction.response.defer()
            return
        await self.refresh(interaction)

    async def refresh(self, interaction: discord.Interaction) -> None:
        """Replace the message with the engine's current embed and buttons."""
        embed = self.controller.build_state_embed(self.engine)
        next_view = None
        if not self.engine.is_finished:
            next_view = QuizView(self.controller, self.channel_id, self.owner_id,
                                 self.engine, timeout=self.timeout)
            next_view.message = self.message
        self.stop()
        await interaction.response.edit_message(embed=embed, view=next_view)

    async def on_timeout(self) -> None:
        if self.controller.get_engine(self.channel_id) is self.engine:
            logger.info(f"Quiz in channel {self.channel_id} timed out")
            self.controller.stop_quiz(self.channel_id)
        if self.message is not None:
            try:
                await self.message.edit(content="⏱️ Quiz expired due to inactivity.", view=None)
            except discord.HTTPException as e:
                logger.error(f"Failed to mark quiz message as expired: {e}")

    async def on_error(self, interaction: discord.Interaction, error: Exception,
                       item: discord.ui.Item) -> None:
        logger.error(f"Error handling quiz button in channel {self.channel_id}: {error}",
                     exc_info=error)
        if not interaction.response.is_done():
            await interaction.response.send_message("❌ Something went wrong with that click.",
                                                    ephemeral=True)
