import queue
import threading

import pyttsx3

from .config import TTS_RATE, TTS_VOLUME
from .logui import debug, warn


def _voice_languages(v) -> list[str]:
    out = []
    for lang in getattr(v, "languages", None) or []:
        if isinstance(lang, bytes):
            lang = lang.decode("utf-8", errors="ignore")
        out.append(str(lang).lower().strip("\x05"))
    return out


def pick_voice_id(voices, locale: str) -> str | None:
    """Best installed voice for a locale: exact tag, then same language, else None."""
    tag = (locale or "").lower().replace("_", "-")
    lang = tag.split("-")[0]
    if not lang:
        return None
    fallback = None
    for v in voices:
        langs = [x.replace("_", "-") for x in _voice_languages(v)]
        vid = (getattr(v, "id", "") or "").lower()
        if tag in langs:
            return v.id
        if fallback is None and (any(x.split("-")[0] == lang for x in langs) or f"{lang}-" in vid):
            fallback = v.id
    return fallback


class Voice:
    """Fire-and-forget speech output. A single worker thread owns the pyttsx3 engine."""

    def __init__(self, rate: int = TTS_RATE, volume: float = TTS_VOLUME):
        self.rate = rate
        self.volume = volume
        self._queue: queue.Queue = queue.Queue()
        self._voice_cache: dict[str, str | None] = {}
        self._thread = threading.Thread(target=self._worker, daemon=True)
        self._thread.start()

    def speak(self, text: str, locale: str):
        if not text:
            return
        self._queue.put((text, locale))

    def shutdown(self):
        self._queue.put(None)
        self._thread.join(timeout=2.0)

    def _worker(self):
        try:
            engine = pyttsx3.init()
            engine.setProperty("rate", self.rate)
            engine.setProperty("volume", self.volume)
        except Exception as e:
            warn(f"TTS init failed: {e}")
            engine = None

        while True:
            item = self._queue.get()
            if item is None:
                break
            if engine is None:
                continue
            text, locale = item
            try:
                self._select_voice(engine, locale)
                engine.say(text)
                engine.runAndWait()
            except Exception as e:
                warn(f"TTS error: {e}")

        if engine is not None:
            try:
                engine.stop()
            except Exception as e:
                debug(f"TTS stop failed: {e}")

    def _select_voice(self, engine, locale: str):
        if locale not in self._voice_cache:
            self._voice_cache[locale] = pick_voice_id(engine.getProperty("voices"), locale)
        voice_id = self._voice_cache[locale]
        if voice_id:
            engine.setProperty("voice", voice_id)
