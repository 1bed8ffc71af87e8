import io
import json
import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from .config_manager import ConfigManager
from .discord_presenter import DiscordPresenter
from .question_provider import QuestionProvider
from .quiz_controller import QuizController, SessionState
from .session_store import JsonFileSessionStore

logger = logging.getLogger(__name__)

HELP_TEXT = {
    "/start": "Start a quiz with the current settings",
    "/answer": "Pick a choice by its number",
    "/next, /prev, /skip": "Move between questions",
    "/jump": "Go to a question by number",
    "/review": "Flag or unflag the current question for review",
    "/pause, /resume": "Pause or continue the countdown",
    "/submit, /end": "Finish the quiz and show the results",
    "/export": "Download the results as JSON",
    "/resume_saved": "Continue the saved session",
    "/new_quiz": "Discard the current session",
    "/status": "Show quiz progress",
    "/set_mode, /set_timer, /set_questions, /set_source": "Change settings for the next quiz",
}


class QuizBot(commands.Bot):
    """Discord bot running one QuizzyBee session at a time."""

    def __init__(self, config=None):
        intents = discord.Intents.none()
        intents.guilds = True  # Required for slash commands

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(command_prefix=command_prefix, intents=intents, help_command=None)

        self.app_config = config or {}
        self.config_manager = ConfigManager()
        storage = self.app_config.get('storage', {})
        self.quiz_controller = QuizController(
            provider=QuestionProvider(storage.get('questions_file', './questions.json')),
            store=JsonFileSessionStore(storage.get('session_directory', './sessions/'))
        )

    async def setup_hook(self):
        """Called when the bot is starting up"""
        for message in self.config_manager.apply_config(self.app_config):
            logger.warning(f"Configuration value ignored: {message}")
        self.setup_commands()
        logger.info("Bot setup completed successfully")

    async def on_ready(self):
        logger.info(f"Bot connected as {self.user}")
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    def setup_commands(self):
        """Register all slash commands"""
        tree = self.tree

        @tree.command(name="help", description="Display available commands")
        async def help_command(interaction: discord.Interaction):
            embed = discord.Embed(title="📖 QuizzyBee Commands", color=0x3366ff)
            for name, description in HELP_TEXT.items():
                embed.add_field(name=name, value=description, inline=False)
            await interaction.response.send_message(embed=embed, ephemeral=True)

        @tree.command(name="start", description="Start a quiz with current settings")
        async def start_command(interaction: discord.Interaction):
            await self.handle_start(interaction)

        @tree.command(name="answer", description="Answer the current question")
        @app_commands.describe(choice="Choice number as shown in the question")
        async def answer_command(interaction: discord.Interaction, choice: int):
            await self.handle_answer(interaction, choice)

        @tree.command(name="next", description="Go to the next question")
        async def next_command(interaction: discord.Interaction):
            await self.handle_navigation(interaction, self.quiz_controller.next, "Already on the last question")

        @tree.command(name="prev", description="Go to the previous question")
        async def prev_command(interaction: discord.Interaction):
            await self.handle_navigation(interaction, self.quiz_controller.prev, "Already on the first question")

        @tree.command(name="skip", description="Skip the current question")
        async def skip_command(interaction: discord.Interaction):
            await self.handle_navigation(interaction, self.quiz_controller.skip, "Already on the last question")

        @tree.command(name="jump", description="Go to a question by number")
        async def jump_command(interaction: discord.Interaction, number: int):
            await self.handle_navigation(
                interaction,
                lambda: self.quiz_controller.jump_to(number - 1),
                f"Cannot go to question {number}"
            )

        @tree.command(name="review", description="Flag the current question for review")
        async def review_command(interaction: discord.Interaction):
            flagged = self.quiz_controller.toggle_review()
            if flagged is None:
                await self.send_error_response(interaction, "No quiz in progress.")
            else:
                await self.send_info_response(
                    interaction,
                    "🚩 Marked for review" if flagged else "Review flag removed"
                )

        @tree.command(name="pause", description="Pause the current quiz")
        async def pause_command(interaction: discord.Interaction):
            if self.quiz_controller.pause():
                await self.send_info_response(interaction, "⏸️ Quiz paused. Use /resume to continue.")
            else:
                await self.send_error_response(interaction, "No quiz in progress.")

        @tree.command(name="resume", description="Resume the paused quiz")
        async def resume_command(interaction: discord.Interaction):
            if self.quiz_controller.resume():
                await self.send_info_response(interaction, "▶️ Quiz resumed.")
            else:
                await self.send_error_response(interaction, "The quiz is not paused.")

        @tree.command(name="submit", description="Submit a test-mode quiz")
        async def submit_command(interaction: discord.Interaction):
            await self.handle_finish(interaction, submit=True)

        @tree.command(name="end", description="End the quiz and show results")
        async def end_command(interaction: discord.Interaction):
            await self.handle_finish(interaction, submit=False)

        @tree.command(name="export", description="Download the results as JSON")
        async def export_command(interaction: discord.Interaction):
            await self.handle_export(interaction)

        @tree.command(name="resume_saved", description="Continue the saved quiz session")
        async def resume_saved_command(interaction: discord.Interaction):
            self.quiz_controller.presenter = DiscordPresenter(interaction.channel)
            await interaction.response.defer()
            resumed = await self.quiz_controller.resume_session()
            await interaction.followup.send("Session restored." if resumed else "Nothing to resume.")

        @tree.command(name="new_quiz", description="Discard the current quiz session")
        async def new_quiz_command(interaction: discord.Interaction):
            self.quiz_controller.new_quiz()
            await self.send_info_response(interaction, "🧹 Session cleared. Use /start for a new quiz.")

        @tree.command(name="status", description="Show current quiz status")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        @tree.command(name="set_mode", description="Set practice or test mode for the next quiz")
        async def set_mode_command(interaction: discord.Interaction, mode: str):
            await self.send_result(interaction, self.config_manager.set_mode(mode))

        @tree.command(name="set_timer", description="Set seconds per question (5-300)")
        async def set_timer_command(interaction: discord.Interaction, seconds: int):
            await self.send_result(interaction, self.config_manager.set_time_per_question(seconds))

        @tree.command(name="set_questions", description="Set the number of questions (1-50)")
        async def set_questions_command(interaction: discord.Interaction, number: int):
            await self.send_result(interaction, self.config_manager.set_question_count(number))

        @tree.command(name="set_source", description="Use 'local' questions or the 'opentdb' trivia API")
        async def set_source_command(interaction: discord.Interaction, source: str):
            await self.send_result(interaction, self.config_manager.set_source(source))

    async def handle_start(self, interaction: discord.Interaction):
        controller = self.quiz_controller
        if controller.state in (SessionState.IN_PROGRESS, SessionState.PAUSED):
            await self.send_error_response(
                interaction,
                "A quiz is already running. Use /end or /new_quiz first."
            )
            return

        await interaction.response.defer()
        controller.presenter = DiscordPresenter(interaction.channel)
        settings = self.config_manager.get_quiz_settings()
        try:
            await controller.start_session(settings)
        except ValueError as e:
            logger.error(f"Failed to start quiz: {e}")
            await interaction.followup.send(f"❌ Could not start the quiz: {e}")
            return
        await interaction.followup.send(f"```\n{self.config_manager.get_settings_summary()}\n```")

    async def handle_answer(self, interaction: discord.Interaction, choice: int):
        choices = self.quiz_controller.display_choices()
        if not 1 <= choice <= len(choices):
            await self.send_error_response(interaction, f"Pick a number between 1 and {len(choices) or 1}.")
            return
        answer = self.quiz_controller.select_choice(choices[choice - 1])
        if answer is None:
            await self.send_error_response(interaction, "That answer cannot be recorded right now.")
        else:
            await self.send_info_response(interaction, f"Answer recorded: {answer.selected}")

    async def handle_navigation(self, interaction: discord.Interaction, move, failure: str):
        if move():
            await self.send_info_response(
                interaction,
                f"Question {self.quiz_controller.current_index + 1}"
            )
        else:
            await self.send_error_response(interaction, failure)

    async def handle_finish(self, interaction: discord.Interaction, submit: bool):
        if self.quiz_controller.session is None:
            await self.send_error_response(interaction, "No quiz to finish.")
            return
        summary = self.quiz_controller.submit() if submit else self.quiz_controller.end()
        if summary is None:
            await self.send_error_response(interaction, "Practice quizzes are finished with /end.")
        else:
            await self.send_info_response(interaction, "Quiz finished. Use /export to download your results.")

    async def handle_export(self, interaction: discord.Interaction):
        if self.quiz_controller.session is None:
            await self.send_error_response(interaction, "There are no results to export.")
            return
        payload = self.quiz_controller.export_results()
        data = io.BytesIO(json.dumps(payload, indent=2, ensure_ascii=False).encode('utf-8'))
        await interaction.response.send_message(
            file=discord.File(data, filename=self.quiz_controller.export_filename())
        )

    async def handle_status(self, interaction: discord.Interaction):
        controller = self.quiz_controller
        state = controller.state
        embed = discord.Embed(title="📊 Quiz Status", color=0x3366ff)
        embed.add_field(name="State", value=state.value.replace("_", " "), inline=True)
        if controller.session is not None:
            session = controller.session
            embed.add_field(name="Question", value=f"{session.current_index + 1}/{session.total}", inline=True)
            embed.add_field(name="Time left", value=f"{controller.timer_remaining}s", inline=True)
            palette = " ".join(
                f"{'[' if p['current'] else ''}{p['number']}{'✓' if p['attempted'] else ''}"
                f"{'🚩' if p['review'] else ''}{']' if p['current'] else ''}"
                for p in controller.palette()
            )
            embed.add_field(name="Palette", value=palette[:1024] or "-", inline=False)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    async def send_result(self, interaction: discord.Interaction, result: dict):
        if result['success']:
            await self.send_info_response(interaction, result['user_message'])
        else:
            await self.send_error_response(interaction, result['user_message'])

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        await self._respond(interaction, discord.Embed(title=title, description=message, color=0xff0000))

    async def send_info_response(self, interaction: discord.Interaction, message: str, title: str = "ℹ️ Information"):
        await self._respond(interaction, discord.Embed(title=title, description=message, color=0x0099ff))

    async def _respond(self, interaction: discord.Interaction, embed: discord.Embed):
        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            logger.error(f"Failed to send response: {e}")


async def run_bot(token: str, config: Optional[dict] = None):
    """Run the bot until it is closed."""
    bot = QuizBot(config)
    async with bot:
        await bot.start(token)
