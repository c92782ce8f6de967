import unittest
import os
import sys
from types import SimpleNamespace
from unittest import mock

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from careassist.voice import Voice, pick_voice_id

US = SimpleNamespace(id="voice.en_us", languages=["en_US"])
INDIA = SimpleNamespace(id="voice.en_in", languages=[b"\x05en-IN"])
HINDI = SimpleNamespace(id="MSTTS_V110_hi-IN_Kalpana", languages=[])
VOICES = [US, INDIA, HINDI]


class TestPickVoice(unittest.TestCase):
    def test_exact_locale(self):
        self.assertEqual(pick_voice_id(VOICES, "en-IN"), "voice.en_in")
        self.assertEqual(pick_voice_id(VOICES, "en_US"), "voice.en_us")

    def test_same_language_fallback(self):
        self.assertEqual(pick_voice_id(VOICES, "en-GB"), "voice.en_us")
        self.assertEqual(pick_voice_id(VOICES, "hi-IN"), "MSTTS_V110_hi-IN_Kalpana")

    def test_no_match(self):
        self.assertIsNone(pick_voice_id(VOICES, "ta-IN"))
        self.assertIsNone(pick_voice_id(VOICES, ""))
        self.assertIsNone(pick_voice_id([], "en-IN"))


class TestVoice(unittest.TestCase):
    def setUp(self):
        self.pyttsx3 = mock.patch("careassist.voice.pyttsx3").start()
        self.addCleanup(mock.patch.stopall)
        self.engine = self.pyttsx3.init.return_value
        self.engine.getProperty.return_value = VOICES

    def test_speaks_with_matching_voice(self):
        voice = Voice(rate=150, volume=0.5)
        voice.speak("hello", "en-IN")
        voice.speak("", "en-IN")
        voice.shutdown()
        self.engine.setProperty.assert_any_call("rate", 150)
        self.engine.setProperty.assert_any_call("volume", 0.5)
        self.engine.setProperty.assert_any_call("voice", "voice.en_in")
        self.engine.say.assert_called_once_with("hello")
        self.engine.runAndWait.assert_called_once_with()
        self.engine.stop.assert_called_once_with()

    def test_voice_lookup_is_cached(self):
        voice = Voice()
        voice.speak("one", "hi-IN")
        voice.speak("two", "hi-IN")
        voice.shutdown()
        self.engine.getProperty.assert_called_once_with("voices")
        self.assertEqual(self.engine.say.call_count, 2)

    def test_speech_errors_are_contained(self):
        self.engine.say.side_effect = [RuntimeError("driver busy"), None]
        voice = Voice()
        voice.speak("one", "en-IN")
        voice.speak("two", "en-IN")
        voice.shutdown()
        self.assertEqual(self.engine.runAndWait.call_count, 1)

    def test_init_failure(self):
        self.pyttsx3.init.side_effect = RuntimeError("no driver")
        voice = Voice()
        voice.speak("hello", "en-IN")
        voice.shutdown()
        self.assertFalse(voice._thread.is_alive())
        self.engine.say.assert_not_called()


if __name__ == "__main__":
    unittest.main()
