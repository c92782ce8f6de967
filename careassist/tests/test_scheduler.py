import asyncio
import unittest
import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from careassist.followup import ConfirmationGate, PendingAction, PendingActionSlot
from careassist.entities import ExtractedEntities
from careassist.intents import Intent
from careassist.scheduler import TransitionTimer


class TestTransitionTimer(unittest.IsolatedAsyncioTestCase):
    async def test_fires_once(self):
        timer = TransitionTimer()
        fired = []
        timer.schedule(0.01, lambda: fired.append("idle"), "speaking")
        self.assertTrue(timer.is_pending())
        await asyncio.sleep(0.05)
        self.assertEqual(fired, ["idle"])
        self.assertFalse(timer.is_pending())

    async def test_cancel(self):
        timer = TransitionTimer()
        fired = []
        timer.schedule(0.01, lambda: fired.append("idle"))
        timer.cancel()
        await asyncio.sleep(0.05)
        self.assertEqual(fired, [])

    async def test_reschedule_replaces(self):
        timer = TransitionTimer()
        fired = []
        first = timer.schedule(0.01, lambda: fired.append("first"))
        second = timer.schedule(0.02, lambda: fired.append("second"))
        self.assertGreater(second, first)
        await asyncio.sleep(0.06)
        self.assertEqual(fired, ["second"])

    async def test_zero_delay_still_checks_generation(self):
        timer = TransitionTimer()
        fired = []
        timer.schedule(0, lambda: fired.append("now"))
        # nothing has run yet; bumping the generation must win
        timer.cancel()
        await asyncio.sleep(0.01)
        self.assertEqual(fired, [])

    async def test_negative_delay_clamped(self):
        timer = TransitionTimer()
        fired = []
        timer.schedule(-5, lambda: fired.append("now"))
        await asyncio.sleep(0.01)
        self.assertEqual(fired, ["now"])


class TestPendingActionSlot(unittest.TestCase):
    def _pending(self, intent):
        return PendingAction(intent, ExtractedEntities(raw_text="x"), "en")

    def test_set_and_take(self):
        slot = PendingActionSlot()
        self.assertFalse(slot.is_pending())
        slot.set_pending(self._pending(Intent.CALL_CONTACT))
        self.assertTrue(slot.is_pending())
        taken = slot.take()
        self.assertEqual(taken.intent, Intent.CALL_CONTACT)
        self.assertEqual(taken.gate, ConfirmationGate.POLICY)
        self.assertIsNone(slot.take())

    def test_newest_wins(self):
        slot = PendingActionSlot()
        slot.set_pending(self._pending(Intent.CALL_CONTACT))
        slot.set_pending(self._pending(Intent.SOS_TRIGGER))
        self.assertEqual(slot.get_pending().intent, Intent.SOS_TRIGGER)
        slot.clear_pending()
        self.assertIsNone(slot.get_pending())


if __name__ == "__main__":
    unittest.main()
