"""Speech capture, language identification and translation to the baseline language.

The coordinator owns one capture session at a time. Engine callbacks may come
from any thread; they are funnelled into an asyncio queue and consumed as a
small stream of tagged events by whoever drives ``listen()``.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import AsyncIterator, Callable, Mapping, Protocol

from .config import BASELINE_LANGUAGE, LANGUAGE_TABLE, UNDETERMINED_LANGUAGE
from .logui import debug, info, warn, error


@dataclass(frozen=True)
class LanguageProfile:
    code: str
    display_name: str
    locale: str
    translation_code: str


@dataclass(frozen=True)
class LanguageSettings:
    profiles: Mapping[str, LanguageProfile]
    baseline: str = BASELINE_LANGUAGE

    def __post_init__(self):
        if self.baseline not in self.profiles:
            raise ValueError(f"Baseline language {self.baseline!r} has no profile")
        object.__setattr__(self, "profiles", MappingProxyType(dict(self.profiles)))

    @classmethod
    def from_table(cls, table: Mapping[str, tuple], baseline: str = BASELINE_LANGUAGE) -> "LanguageSettings":
        profiles = {
            code: LanguageProfile(code, name, locale, tcode)
            for code, (name, locale, tcode) in table.items()
        }
        return cls(profiles=profiles, baseline=baseline)

    def is_supported(self, code: str | None) -> bool:
        return bool(code) and code in self.profiles

    def profile(self, code: str | None) -> LanguageProfile:
        return self.profiles.get(code or "", self.profiles[self.baseline])


DEFAULT_LANGUAGES = LanguageSettings.from_table(LANGUAGE_TABLE)


class CaptureError(Enum):
    AUDIO = "Audio recording error"
    CLIENT = "Client side error"
    INSUFFICIENT_PERMISSIONS = "Insufficient permissions"
    NETWORK = "Network error"
    NETWORK_TIMEOUT = "Network timeout"
    NO_MATCH = "No speech match"
    RECOGNIZER_BUSY = "Recognition service busy"
    SERVER = "Server error"
    SPEECH_TIMEOUT = "No speech input"
    UNKNOWN = "Unknown error"

    @property
    def message(self) -> str:
        return self.value


@dataclass(frozen=True)
class SpeechReady:
    pass


@dataclass(frozen=True)
class SpeechStarted:
    pass


@dataclass(frozen=True)
class PartialTranscript:
    text: str


@dataclass(frozen=True)
class FinalTranscript:
    text: str
    confidence: float = 1.0


@dataclass(frozen=True)
class CaptureFailed:
    error: CaptureError


SpeechEvent = SpeechReady | SpeechStarted | PartialTranscript | FinalTranscript | CaptureFailed

TERMINAL_EVENTS = (FinalTranscript, CaptureFailed)


@dataclass(frozen=True)
class SpeechResult:
    text: str
    detected_language: str
    baseline_text: str
    confidence: float


class SpeechEngine(Protocol):
    def start_capture(self, on_event: Callable[[SpeechEvent], None]) -> None: ...

    def stop_capture(self) -> None: ...

    def close(self) -> None: ...


class LanguageIdentifier(Protocol):
    def identify(self, text: str) -> str | None: ...


class Translator(Protocol):
    def ensure_model(self) -> bool: ...

    def has_model(self) -> bool: ...

    def translate(self, text: str) -> str | None: ...

    def close(self) -> None: ...


class TranslatorFactory(Protocol):
    def translator(self, source_code: str, target_code: str) -> Translator: ...


class SpeechOutput(Protocol):
    def speak(self, text: str, locale: str) -> None: ...

    def shutdown(self) -> None: ...


class LanguageCoordinator:
    def __init__(
        self,
        engine: SpeechEngine,
        identifier: LanguageIdentifier,
        translators: TranslatorFactory,
        voice: SpeechOutput | None = None,
        settings: LanguageSettings = DEFAULT_LANGUAGES,
    ):
        self.engine = engine
        self.identifier = identifier
        self.translator_factory = translators
        self.voice = voice
        self.settings = settings
        self._translators: dict[str, Translator] = {}
        self._session = 0
        self._capturing = False

    @property
    def baseline(self) -> str:
        return self.settings.baseline

    @property
    def capturing(self) -> bool:
        return self._capturing

    def is_supported(self, code: str | None) -> bool:
        return self.settings.is_supported(code)

    async def listen(self) -> AsyncIterator[SpeechEvent]:
        """Run one capture session, yielding events until a final transcript or an error."""
        self.stop_capture()

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        self._session += 1
        session = self._session

        def on_event(event: SpeechEvent):
            loop.call_soon_threadsafe(self._deliver, queue, session, event)

        self._capturing = True
        try:
            self.engine.start_capture(on_event)
        except Exception as e:
            error(f"Failed to start capture: {e}")
            self._capturing = False
            yield CaptureFailed(CaptureError.CLIENT)
            return

        try:
            while True:
                event = await queue.get()
                if isinstance(event, PartialTranscript):
                    debug(f'Partial: "{event.text}"')
                yield event
                if isinstance(event, TERMINAL_EVENTS):
                    if isinstance(event, CaptureFailed):
                        warn(f"Speech error: {event.error.message}")
                    return
        finally:
            if session == self._session:
                self.stop_capture()

    def _deliver(self, queue: asyncio.Queue, session: int, event: SpeechEvent):
        if session != self._session:
            debug(f"Dropped event from old session {session}: {type(event).__name__}")
            return
        queue.put_nowait(event)

    def stop_capture(self):
        if not self._capturing:
            return
        self._capturing = False
        try:
            self.engine.stop_capture()
        except Exception as e:
            warn(f"Error stopping speech recognizer: {e}")

    async def resolve(self, text: str, confidence: float = 1.0) -> SpeechResult:
        detected = await self.detect_language(text)
        debug(f"Detected language: {detected}")
        baseline_text = text
        if detected != self.baseline:
            translated = await self.translate_to_baseline(text, detected)
            baseline_text = translated if translated else text
        return SpeechResult(
            text=text,
            detected_language=detected,
            baseline_text=baseline_text,
            confidence=confidence,
        )

    async def detect_language(self, text: str) -> str:
        try:
            code = await asyncio.to_thread(self.identifier.identify, text)
        except Exception as e:
            warn(f"Language detection failed: {e}")
            return self.baseline
        if not code or code == UNDETERMINED_LANGUAGE or not self.is_supported(code):
            return self.baseline
        return code

    def _translator_for(self, source: str) -> Translator | None:
        if source == self.baseline or not self.is_supported(source):
            return None
        translator = self._translators.get(source)
        if translator is None:
            src = self.settings.profiles[source].translation_code
            dst = self.settings.profiles[self.baseline].translation_code
            translator = self.translator_factory.translator(src, dst)
            self._translators[source] = translator
        return translator

    async def translate_to_baseline(self, text: str, source: str) -> str | None:
        try:
            translator = self._translator_for(source)
            if translator is None:
                return None
            ready = await asyncio.to_thread(translator.ensure_model)
            if not ready:
                warn(f"Translation model for {source} unavailable; using original text")
                return None
            translated = await asyncio.to_thread(translator.translate, text)
        except Exception as e:
            warn(f"Translation failed ({source}): {e}")
            return None
        if translated:
            debug(f'Translated: "{text}" -> "{translated}"')
        return translated or None

    async def download_language_model(self, code: str) -> bool:
        profile = self.settings.profiles.get(code)
        try:
            translator = self._translator_for(code)
            if translator is None:
                return False
            ok = bool(await asyncio.to_thread(translator.ensure_model))
        except Exception as e:
            warn(f"Model download failed for {code}: {e}")
            return False
        if ok:
            info(f"Downloaded translation model for {profile.display_name}")
        else:
            warn(f"Failed to download translation model for {profile.display_name}")
        return ok

    async def is_model_downloaded(self, code: str) -> bool:
        translator = self._translator_for(code)
        if translator is None:
            return False
        try:
            return bool(await asyncio.to_thread(translator.has_model))
        except Exception as e:
            warn(f"Model check failed for {code}: {e}")
            return False

    def speak(self, text: str, language: str | None = None):
        if self.voice is None:
            return
        locale = self.settings.profile(language).locale
        try:
            self.voice.speak(text, locale)
        except Exception as e:
            warn(f"TTS failed: {e}")
        debug(f'Speaking: "{text}" (lang: {language or self.baseline})')

    def release(self):
        self.stop_capture()
        self._session += 1
        try:
            self.engine.close()
        except Exception as e:
            warn(f"Failed to close speech recognizer: {e}")
        for source, translator in list(self._translators.items()):
            try:
                translator.close()
            except Exception as e:
                warn(f"Failed to close translator {source}: {e}")
        self._translators.clear()
        if self.voice is not None:
            try:
                self.voice.shutdown()
            except Exception as e:
                warn(f"TTS shutdown failed: {e}")
        info("Language coordinator released")
