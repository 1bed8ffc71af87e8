"""
Discord rendering for quiz sessions.
"""
import asyncio
import logging
from typing import Any, Coroutine, Dict, Optional, Set

import discord

from .presenter import QuizPresenter

SOUND_EMOJI = {
    "correct": "🔔",
    "incorrect": "🔕",
    "complete": "🎺",
}


def timer_style(remaining: int):
    """Embed colour, emoji and footer for the remaining time."""
    if remaining > 5:
        return 0x00ff00, "⏱️", "Pick an answer with /answer"
    if remaining > 2:
        return 0xff6600, "⚠️", "⚡ Time running out!"
    return 0xff0000, "🚨", "🚨 Final seconds!"


class DiscordPresenter(QuizPresenter):
    """
    Presents the quiz in a Discord text channel.

    The controller calls these hooks synchronously; each one schedules the
    Discord API call on the running event loop so a slow or failing request
    never blocks the question loop.
    """

    TIMER_EDIT_EVERY = 5

    def __init__(self, channel: discord.abc.Messageable):
        super().__init__()
        self.channel = channel
        self.logger = logging.getLogger(__name__)
        self.question_message: Optional[discord.Message] = None
        self._question_view: Dict[str, Any] = {}
        self._pending: Set[asyncio.Task] = set()
        self._render_token = 0

    def announce(self, message: str) -> None:
        self.logger.info(f"Announcement: {message}")
        self._dispatch(self._send(content=f"📣 {message}"))

    def render_question(self, view: Dict[str, Any]) -> None:
        self._render_token += 1
        self._question_view = dict(view)
        self.question_message = None
        self._dispatch(self._send_question(self.build_question_embed(view), self._render_token))

    def render_timer(self, remaining: int, percentage: float) -> None:
        if not self._question_view or self.question_message is None:
            return
        if remaining % self.TIMER_EDIT_EVERY and remaining > 5:
            return
        embed = self.build_question_embed(self._question_view, remaining, percentage)
        self._dispatch(self._edit_question(embed))

    def show_feedback(self, question_id: str, correct: bool) -> None:
        text = "✅ Correct!" if correct else "❌ Incorrect."
        self._dispatch(self._send(content=text))

    def play_sound(self, kind: str) -> None:
        emoji = SOUND_EMOJI.get(kind)
        if emoji:
            self._dispatch(self._send(content=emoji))

    def render_summary(self, summary: Dict[str, Any]) -> None:
        self._render_token += 1
        self._question_view = {}
        self._dispatch(self._send(embed=self.build_summary_embed(summary)))

    def celebrate(self) -> None:
        self._dispatch(self._send(content="🎉🎉🎉 Great job! 🎉🎉🎉"))

    @staticmethod
    def build_question_embed(
        view: Dict[str, Any],
        remaining: Optional[int] = None,
        percentage: Optional[float] = None
    ) -> discord.Embed:
        color, timer_emoji, footer_text = timer_style(remaining if remaining is not None else 99)
        embed = discord.Embed(
            title=f"🎯 Question {view['number']}/{view['total']}",
            description=view['question'],
            color=color
        )
        lines = []
        for index, choice in enumerate(view['choices'], start=1):
            marker = ""
            if choice == view.get('selected'):
                marker = " ◀"
            if view.get('correct_answer') and choice == view['correct_answer']:
                marker += " ✅"
            lines.append(f"**{index}.** {choice}{marker}")
        embed.add_field(name="Choices", value="\n".join(lines), inline=False)
        embed.add_field(name="📚 Category", value=view['category'], inline=True)
        embed.add_field(name="⭐ Difficulty", value=view['difficulty'].capitalize(), inline=True)
        if remaining is not None:
            embed.add_field(
                name=f"{timer_emoji} Time Remaining",
                value=f"{remaining} second{'s' if remaining != 1 else ''} ({percentage:.0f}%)",
                inline=True
            )
        if view.get('flagged'):
            embed.add_field(name="🚩 Review", value="Marked for review", inline=True)
        embed.set_footer(text=f"{view['mode'].capitalize()} mode • {footer_text}")
        return embed

    @staticmethod
    def build_summary_embed(summary: Dict[str, Any]) -> discord.Embed:
        embed = discord.Embed(title="🏁 Quiz Results", color=0x3366ff)
        embed.add_field(name="Total", value=str(summary['total']), inline=True)
        embed.add_field(name="Correct", value=str(summary['correct']), inline=True)
        embed.add_field(name="Incorrect", value=str(summary['incorrect']), inline=True)
        embed.add_field(name="Unanswered", value=str(summary['unanswered']), inline=True)
        embed.add_field(name="Accuracy", value=f"{summary['accuracy']}%", inline=True)
        embed.add_field(name="Time", value=f"{summary['total_time']}s", inline=True)

        lines = []
        for item in summary['breakdown'][:20]:
            line = f"{item['number']}. {item['status'].capitalize()}"
            if item['selected']:
                line += f" • your answer: {item['selected']}"
            if item['time_taken'] is not None:
                line += f" • {item['time_taken']}s"
            lines.append(line)
        if lines:
            embed.add_field(name="Breakdown", value="\n".join(lines)[:1024], inline=False)
        return embed

    def _dispatch(self, coro: Coroutine) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            self.logger.warning("No running event loop; Discord update dropped")
            return
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, **kwargs) -> Optional[discord.Message]:
        try:
            return await self.channel.send(**kwargs)
        except discord.HTTPException as e:
            # Log error but don't raise to avoid breaking quiz flow
            self.logger.error(f"Failed to send message: {e}")
            return None

    async def _send_question(self, embed: discord.Embed, token: int) -> None:
        message = await self._send(embed=embed)
        # A later render_question supersedes this message.
        if token == self._render_token:
            self.question_message = message

    async def _edit_question(self, embed: discord.Embed) -> None:
        message = self.question_message
        if message is None:
            return
        try:
            await message.edit(embed=embed)
        except discord.HTTPException as e:
            # Log error but don't raise to avoid breaking timer
            self.logger.error(f"Failed to update timer: {e}")
