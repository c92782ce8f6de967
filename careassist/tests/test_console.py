import io
import unittest
import os
import sys
from contextlib import redirect_stdout
from unittest import mock

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from careassist import logui
from careassist.console import handle_command, parse_command
from careassist.state import Idle, Listening, StateStream


class TestParseCommand(unittest.TestCase):
    def test_ui_bridge_commands(self):
        self.assertEqual(parse_command("TEXT: call my daughter\n", False), ("text", "call my daughter"))
        self.assertEqual(parse_command("CONFIRM", False), ("confirm", ""))
        self.assertEqual(parse_command("cancel", False), ("cancel", ""))
        self.assertEqual(parse_command("REPEAT", False), ("repeat", ""))
        self.assertEqual(parse_command("STOP", False), ("stop", ""))
        self.assertEqual(parse_command("LISTEN", False), ("listen", ""))
        self.assertEqual(parse_command("quit", False), ("quit", ""))

    def test_spoken_style_answers(self):
        self.assertEqual(parse_command("Go  ahead", True), ("confirm", ""))
        self.assertEqual(parse_command("never mind", True), ("cancel", ""))
        self.assertEqual(parse_command("say that again", True), ("repeat", ""))

    def test_enter_to_talk(self):
        self.assertEqual(parse_command("\n", False), ("listen", ""))
        self.assertEqual(parse_command("\n", True), ("noop", ""))

    def test_free_text(self):
        self.assertEqual(parse_command("set timer for 5 minutes", True), ("text", "set timer for 5 minutes"))
        self.assertEqual(parse_command("set timer for 5 minutes", False), ("noop", ""))


class TestHandleCommand(unittest.IsolatedAsyncioTestCase):
    async def test_routes_to_assistant(self):
        assistant = mock.AsyncMock()
        self.assertTrue(await handle_command(assistant, "text", "call my son"))
        assistant.process_text.assert_awaited_once_with("call my son")
        self.assertTrue(await handle_command(assistant, "confirm", ""))
        assistant.confirm_action.assert_awaited_once_with()
        self.assertTrue(await handle_command(assistant, "cancel", ""))
        assistant.cancel_action.assert_awaited_once_with()
        self.assertTrue(await handle_command(assistant, "listen", ""))
        assistant.start_listening.assert_awaited_once_with()

    async def test_quit_and_empty_text(self):
        assistant = mock.AsyncMock()
        self.assertTrue(await handle_command(assistant, "text", ""))
        assistant.process_text.assert_not_awaited()
        self.assertFalse(await handle_command(assistant, "quit", ""))


class TestUiBridge(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        logui.enable_ui_mode(True)

    def tearDown(self):
        logui.enable_ui_mode(False)

    async def test_state_lines(self):
        out = io.StringIO()
        stream = StateStream(Idle())
        with redirect_stdout(out):
            stream.publish(Listening())
            stream.publish(Listening("call my"))
            stream.publish(Idle())
            logui.ui_command("call   my\ndaughter")
        self.assertEqual(out.getvalue().splitlines(), ["STATE:LISTENING", "STATE:IDLE", "COMMAND:call my daughter"])

    async def test_subscribe(self):
        stream = StateStream()
        states = stream.subscribe()
        with redirect_stdout(io.StringIO()):
            self.assertEqual(await anext(states), Idle())
            stream.publish(Listening())
            stream.publish(Listening())
            stream.publish(Listening("hi"))
            self.assertEqual(await anext(states), Listening())
            self.assertEqual(await anext(states), Listening("hi"))
        await states.aclose()


if __name__ == "__main__":
    unittest.main()
