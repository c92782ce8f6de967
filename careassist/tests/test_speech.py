import json
import threading
import unittest
import os
import sys
from unittest import mock

import numpy as np

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from careassist.config import CHUNK_SAMPLES
from careassist.language import (
    CaptureError,
    CaptureFailed,
    FinalTranscript,
    PartialTranscript,
    SpeechReady,
    SpeechStarted,
)
from careassist.speech import VoskSpeechEngine, frame_rms, result_confidence

LOUD = np.full(CHUNK_SAMPLES, 1000, dtype=np.int16).tobytes()
QUIET = np.zeros(CHUNK_SAMPLES, dtype=np.int16).tobytes()


class FakeStream:
    def __init__(self, frames=(), on_read=None):
        self.frames = list(frames)
        self.on_read = on_read
        self.started = False
        self.closed = False

    def start_stream(self):
        self.started = True

    def read(self, n, exception_on_overflow=True):
        if self.on_read is not None:
            self.on_read()
        return self.frames.pop(0) if self.frames else QUIET

    def stop_stream(self):
        self.started = False

    def close(self):
        self.closed = True


class FakeRecognizer:
    """Scripted vosk recognizer: one (accepted, json) pair per frame, then silence."""

    def __init__(self, steps=(), final=None):
        self.steps = list(steps)
        self.final = final or {"text": ""}
        self.current = {}

    def SetWords(self, enabled):
        pass

    def AcceptWaveform(self, data):
        accepted, self.current = self.steps.pop(0) if self.steps else (False, {"partial": ""})
        return accepted

    def Result(self):
        return json.dumps(self.current)

    def PartialResult(self):
        return json.dumps(self.current)

    def FinalResult(self):
        return json.dumps(self.final)


class SpeechCase(unittest.TestCase):
    def setUp(self):
        self.pyaudio = mock.patch("careassist.speech.pyaudio").start()
        self.vosk = mock.patch("careassist.speech.vosk").start()
        self.addCleanup(mock.patch.stopall)
        self.engine = VoskSpeechEngine(None, max_seconds=1.0, min_listen_ms=0)
        self.engine.model = object()
        self.events = []

    def use(self, stream, recognizer=None):
        self.engine.audio.open.return_value = stream
        self.vosk.KaldiRecognizer.return_value = recognizer or FakeRecognizer()

    def run_capture(self, stop=None):
        self.engine._run(self.events.append, stop or threading.Event())


class TestHelpers(unittest.TestCase):
    def test_frame_rms(self):
        self.assertEqual(frame_rms(b""), 0.0)
        self.assertEqual(frame_rms(QUIET), 0.0)
        self.assertAlmostEqual(frame_rms(LOUD), 1000.0)

    def test_result_confidence(self):
        self.assertEqual(result_confidence({}), 1.0)
        self.assertEqual(result_confidence({"result": []}), 1.0)
        self.assertEqual(result_confidence({"result": None}), 1.0)
        self.assertAlmostEqual(result_confidence({"result": [{"conf": 0.5}, {"conf": 1.0}, {}]}), 2.5 / 3)


class TestCapture(SpeechCase):
    def test_final_transcript(self):
        stream = FakeStream([LOUD, LOUD])
        rec = FakeRecognizer([
            (False, {"partial": "call"}),
            (True, {"text": "call my daughter", "result": [{"conf": 0.8}, {"conf": 1.0}, {"conf": 0.9}]}),
        ])
        self.use(stream, rec)
        self.run_capture()
        self.assertEqual(self.events[:3], [SpeechReady(), SpeechStarted(), PartialTranscript("call")])
        self.assertEqual(len(self.events), 4)
        final = self.events[3]
        self.assertIsInstance(final, FinalTranscript)
        self.assertEqual(final.text, "call my daughter")
        self.assertAlmostEqual(final.confidence, 0.9)
        self.assertTrue(stream.closed)

    def test_final_result_after_silence(self):
        rec = FakeRecognizer(final={"text": " what time is it ", "result": [{"conf": 0.7}]})
        self.use(FakeStream([LOUD]), rec)
        self.run_capture()
        self.assertEqual(self.events[-1], FinalTranscript("what time is it", 0.7))

    def test_no_match_after_speech(self):
        self.use(FakeStream([LOUD, QUIET, QUIET, QUIET]))
        self.run_capture()
        self.assertEqual(self.events, [SpeechReady(), SpeechStarted(), CaptureFailed(CaptureError.NO_MATCH)])

    def test_timeout_without_speech(self):
        self.engine.max_seconds = 0.05
        self.use(FakeStream())
        self.run_capture()
        self.assertEqual(self.events, [SpeechReady(), CaptureFailed(CaptureError.SPEECH_TIMEOUT)])

    def test_open_failure_is_audio_error(self):
        self.engine.audio.open.side_effect = OSError("no input device")
        self.run_capture()
        self.assertEqual(self.events, [CaptureFailed(CaptureError.AUDIO)])

    def test_read_failure_is_audio_error(self):
        stream = FakeStream()
        stream.read = mock.Mock(side_effect=OSError("overflow"))
        self.use(stream)
        self.run_capture()
        self.assertEqual(self.events, [SpeechReady(), CaptureFailed(CaptureError.AUDIO)])
        self.assertTrue(stream.closed)

    def test_recognizer_failure_is_unknown(self):
        rec = FakeRecognizer()
        rec.AcceptWaveform = mock.Mock(side_effect=RuntimeError("kaldi"))
        self.use(FakeStream([LOUD]), rec)
        self.run_capture()
        self.assertEqual(self.events[-1], CaptureFailed(CaptureError.UNKNOWN))

    def test_stopped_before_start(self):
        stop = threading.Event()
        stop.set()
        self.run_capture(stop)
        self.assertEqual(self.events, [])
        self.engine.audio.open.assert_not_called()

    def test_stopped_while_listening(self):
        stop = threading.Event()
        stream = FakeStream([LOUD], on_read=stop.set)
        self.use(stream)
        self.run_capture(stop)
        self.assertEqual(self.events, [SpeechReady(), SpeechStarted()])
        self.assertTrue(stream.closed)


class TestEngineControl(SpeechCase):
    def test_busy_while_capturing(self):
        self.engine._thread = mock.Mock(**{"is_alive.return_value": True})
        self.engine.start_capture(self.events.append)
        self.assertEqual(self.events, [CaptureFailed(CaptureError.RECOGNIZER_BUSY)])

    def test_missing_model_is_client_error(self):
        self.engine.model = None
        self.engine.start_capture(self.events.append)
        self.assertEqual(self.events, [CaptureFailed(CaptureError.CLIENT)])

    def test_restart_after_stop_hands_over(self):
        previous = mock.Mock(**{"is_alive.return_value": True})
        self.engine._thread = previous
        old_stop = self.engine._stop
        self.engine.stop_capture()
        self.engine._run = mock.Mock()

        self.engine.start_capture(self.events.append)
        self.engine._thread.join(timeout=1.0)
        self.assertEqual(self.events, [])
        self.assertIsNot(self.engine._stop, old_stop)
        self.engine._run.assert_called_once_with(self.events.append, self.engine._stop, previous)

    def test_stop_capture_only_signals(self):
        worker = mock.Mock()
        self.engine._thread = worker
        self.engine.stop_capture()
        self.assertTrue(self.engine._stop.is_set())
        worker.join.assert_not_called()

    def test_close_releases_audio_once(self):
        audio = self.engine.audio
        self.engine.close()
        self.engine.close()
        audio.terminate.assert_called_once_with()
        self.assertIsNone(self.engine.audio)


if __name__ == "__main__":
    unittest.main()
