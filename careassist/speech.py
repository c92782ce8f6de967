import json
import os
import threading
import time
import urllib.request
import zipfile
from typing import Callable

import numpy as np
import pyaudio
import vosk

from .config import (
    CHUNK_SAMPLES,
    FRAME_MS,
    LISTEN_MAX_SECONDS,
    LISTEN_MIN_MS,
    SAMPLE_RATE,
    VAD_SILENCE_MS,
    VAD_START_THRESHOLD,
    VOSK_MODEL_DIR,
    VOSK_MODEL_NAME,
    VOSK_MODEL_URL,
)
from .language import (
    CaptureError,
    CaptureFailed,
    FinalTranscript,
    PartialTranscript,
    SpeechEvent,
    SpeechReady,
    SpeechStarted,
)
from .logui import debug, info, warn, error


def ensure_vosk_model(base_dir: str) -> str | None:
    model_path = VOSK_MODEL_DIR or os.path.join(base_dir, VOSK_MODEL_NAME)
    if os.path.exists(os.path.join(model_path, "am", "final.mdl")):
        return model_path

    info("Vosk model missing -> downloading...")
    zip_path = os.path.join(base_dir, "vosk_model.zip")
    try:
        urllib.request.urlretrieve(VOSK_MODEL_URL, zip_path)
        with zipfile.ZipFile(zip_path, "r") as z:
            z.extractall(os.path.dirname(model_path) or base_dir)
        os.remove(zip_path)
        info("Vosk model downloaded")
    except (OSError, zipfile.BadZipFile) as e:
        warn(f"Failed to download Vosk model: {e}")
        return None
    return model_path


def frame_rms(data: bytes) -> float:
    samples = np.frombuffer(data, dtype=np.int16)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples.astype(np.float64) ** 2)))


def result_confidence(result: dict) -> float:
    words = result.get("result") or []
    confs = [float(w.get("conf", 1.0)) for w in words]
    if not confs:
        return 1.0
    return sum(confs) / len(confs)


class VoskSpeechEngine:
    """Offline recognizer. One capture runs on a worker thread and reports through ``on_event``."""

    def __init__(
        self,
        model_path: str | None,
        max_seconds: float = LISTEN_MAX_SECONDS,
        min_listen_ms: int = LISTEN_MIN_MS,
    ):
        self.max_seconds = max_seconds
        self.min_listen_ms = min_listen_ms
        self.model = None
        if model_path:
            try:
                vosk.SetLogLevel(-1)
                self.model = vosk.Model(model_path)
            except Exception as e:
                warn(f"Failed to load Vosk model: {e}")
        self.audio = pyaudio.PyAudio()
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()

    def start_capture(self, on_event: Callable[[SpeechEvent], None]):
        previous = self._thread
        if previous is not None and previous.is_alive() and not self._stop.is_set():
            on_event(CaptureFailed(CaptureError.RECOGNIZER_BUSY))
            return
        if self.model is None:
            error("Vosk model not loaded")
            on_event(CaptureFailed(CaptureError.CLIENT))
            return
        # each capture owns its stop flag; a stopped worker may still be finishing its last read
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(on_event, self._stop, previous), daemon=True)
        self._thread.start()

    def stop_capture(self):
        self._stop.set()

    def close(self):
        self._stop.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout=1.0)
        if self.audio is not None:
            self.audio.terminate()
            self.audio = None
            debug("Audio released")

    def _open_stream(self):
        return self.audio.open(
            format=pyaudio.paInt16,
            channels=1,
            rate=SAMPLE_RATE,
            input=True,
            frames_per_buffer=CHUNK_SAMPLES,
        )

    def _run(self, on_event: Callable[[SpeechEvent], None], stop: threading.Event, previous: threading.Thread | None = None):
        if previous is not None:
            previous.join()
        if stop.is_set():
            return
        try:
            stream = self._open_stream()
            stream.start_stream()
        except OSError as e:
            warn(f"Failed to start audio stream: {e}")
            on_event(CaptureFailed(CaptureError.AUDIO))
            return

        try:
            self._listen(stream, on_event, stop)
        except OSError as e:
            warn(f"Audio read failed: {e}")
            on_event(CaptureFailed(CaptureError.AUDIO))
        except Exception as e:
            error(f"Recognizer failed: {e}")
            on_event(CaptureFailed(CaptureError.UNKNOWN))
        finally:
            stream.stop_stream()
            stream.close()
            debug("Audio stream stopped")

    def _listen(self, stream, on_event: Callable[[SpeechEvent], None], stop: threading.Event):
        rec = vosk.KaldiRecognizer(self.model, SAMPLE_RATE)
        rec.SetWords(True)
        on_event(SpeechReady())

        started = False
        silence_ms = 0
        start_time = time.time()
        best_final = ""
        best_conf = 1.0
        last_partial = ""

        while time.time() - start_time < self.max_seconds:
            if stop.is_set():
                debug("Capture stopped")
                return
            data = stream.read(CHUNK_SAMPLES, exception_on_overflow=False)
            rms = frame_rms(data)
            elapsed_ms = int((time.time() - start_time) * 1000)

            if not started:
                if rms >= VAD_START_THRESHOLD:
                    started = True
                    silence_ms = 0
                    debug(f"VAD: start (rms={rms:.0f})")
                    on_event(SpeechStarted())
                elif elapsed_ms < self.min_listen_ms:
                    continue
            else:
                if rms < VAD_START_THRESHOLD:
                    silence_ms += FRAME_MS
                else:
                    silence_ms = 0

            if rec.AcceptWaveform(data):
                r = json.loads(rec.Result())
                t = (r.get("text") or "").strip()
                if t:
                    best_final = t
                    best_conf = result_confidence(r)
            else:
                partial = (json.loads(rec.PartialResult()).get("partial") or "").strip()
                if partial and partial != last_partial:
                    last_partial = partial
                    on_event(PartialTranscript(partial))

            if started and silence_ms >= VAD_SILENCE_MS:
                debug("VAD: stop (silence)")
                break

        if stop.is_set():
            return

        if not best_final:
            r = json.loads(rec.FinalResult())
            best_final = (r.get("text") or "").strip()
            best_conf = result_confidence(r)

        if not best_final:
            on_event(CaptureFailed(CaptureError.NO_MATCH if started else CaptureError.SPEECH_TIMEOUT))
            return
        on_event(FinalTranscript(best_final, best_conf))
