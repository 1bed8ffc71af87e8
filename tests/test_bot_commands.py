"""
Unit tests for the slash command handlers with mocked Discord interactions.
"""
import json
import logging
import unittest
from unittest.mock import AsyncMock, Mock

import discord

from quizzybee.bot import QuizBot
from quizzybee.quiz_controller import SessionState
from tests.test_fixtures import TestFixtures


def create_interaction():
    interaction = Mock()
    interaction.response = Mock()
    interaction.response.is_done = Mock(return_value=False)
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.followup = Mock()
    interaction.followup.send = AsyncMock()
    interaction.channel = Mock()
    interaction.channel.send = AsyncMock()
    return interaction


class TestBotCommands(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        logging.disable(logging.CRITICAL)
        self.bot = QuizBot({'quiz': {'question_count': 3}})
        self.bot.config_manager.apply_config(self.bot.app_config)
        self.bot.config_manager.set_shuffle_questions(False)
        self.bot.config_manager.set_shuffle_choices(False)
        self.bot.quiz_controller = TestFixtures.create_controller()
        self.controller = self.bot.quiz_controller

    async def asyncTearDown(self):
        self.controller.timer.stop()
        logging.disable(logging.NOTSET)

    def embed_sent(self, interaction) -> discord.Embed:
        return interaction.response.send_message.await_args.kwargs['embed']

    async def test_start_runs_quiz(self):
        interaction = create_interaction()
        await self.bot.handle_start(interaction)

        interaction.response.defer.assert_awaited_once()
        interaction.followup.send.assert_awaited_once()
        self.assertEqual(self.controller.state, SessionState.IN_PROGRESS)
        self.assertEqual(self.controller.session.total, 3)

    async def test_start_rejected_while_running(self):
        await self.bot.handle_start(create_interaction())
        interaction = create_interaction()
        await self.bot.handle_start(interaction)
        self.assertEqual(self.embed_sent(interaction).title, "❌ Error")

    async def test_answer_by_number(self):
        await self.bot.handle_start(create_interaction())
        interaction = create_interaction()
        await self.bot.handle_answer(interaction, 1)
        self.assertEqual(self.controller.get_answer("q1").selected, "Paris")
        self.assertIn("Paris", self.embed_sent(interaction).description)

    async def test_answer_out_of_range(self):
        await self.bot.handle_start(create_interaction())
        interaction = create_interaction()
        await self.bot.handle_answer(interaction, 9)
        self.assertEqual(self.embed_sent(interaction).title, "❌ Error")
        self.assertIsNone(self.controller.get_answer("q1"))

    async def test_navigation_failure_reports_error(self):
        await self.bot.handle_start(create_interaction())
        interaction = create_interaction()
        await self.bot.handle_navigation(interaction, self.controller.prev, "Already on the first question")
        self.assertEqual(self.embed_sent(interaction).description, "Already on the first question")

    async def test_finish_and_export(self):
        await self.bot.handle_start(create_interaction())
        self.controller.select_choice("Paris")
        await self.bot.handle_finish(create_interaction(), submit=False)
        self.assertEqual(self.controller.state, SessionState.FINISHED)

        interaction = create_interaction()
        await self.bot.handle_export(interaction)
        sent_file = interaction.response.send_message.await_args.kwargs['file']
        self.assertTrue(sent_file.filename.startswith("quizzybee-results-"))
        payload = json.loads(sent_file.fp.read().decode('utf-8'))
        self.assertEqual(payload['summary']['correct'], 1)

    async def test_submit_in_practice_mode_is_refused(self):
        await self.bot.handle_start(create_interaction())
        interaction = create_interaction()
        await self.bot.handle_finish(interaction, submit=True)
        self.assertEqual(self.embed_sent(interaction).title, "❌ Error")
        self.assertEqual(self.controller.state, SessionState.IN_PROGRESS)

    async def test_export_without_session(self):
        interaction = create_interaction()
        await self.bot.handle_export(interaction)
        self.assertEqual(self.embed_sent(interaction).title, "❌ Error")

    async def test_status_shows_palette(self):
        await self.bot.handle_start(create_interaction())
        interaction = create_interaction()
        await self.bot.handle_status(interaction)
        fields = {f.name: f.value for f in self.embed_sent(interaction).fields}
        self.assertEqual(fields["Question"], "1/3")
        self.assertTrue(fields["Palette"].startswith("[1]"))

    async def test_send_result_uses_user_message(self):
        interaction = create_interaction()
        await self.bot.send_result(interaction, self.bot.config_manager.set_time_per_question(2))
        embed = self.embed_sent(interaction)
        self.assertEqual(embed.title, "❌ Error")
        self.assertIn("Minimum is 5 seconds", embed.description)

    async def test_followup_used_after_response(self):
        interaction = create_interaction()
        interaction.response.is_done.return_value = True
        await self.bot.send_info_response(interaction, "hello")
        interaction.followup.send.assert_awaited_once()
        interaction.response.send_message.assert_not_awaited()


if __name__ == '__main__':
    unittest.main()
