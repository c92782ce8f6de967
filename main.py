import asyncio
import os
import sys

from careassist.assistant import VoiceAssistant
from careassist.config import INTENT_API_URL, TRANSLATE_API_URL
from careassist.console import NoMicrophone, run_console
from careassist.dispatch import ConsoleDispatcher, RequiredSlotGuard
from careassist.intent_api import IntentAPI, is_service_up
from careassist.language import LanguageCoordinator
from careassist.logui import ui_state, info, warn, error, UI_MODE, LOG_LEVEL
from careassist.translate_api import TranslateAPI

TEXT_MODE = "--text" in sys.argv


def build_engine(base_dir: str):
    if TEXT_MODE:
        return NoMicrophone()
    from careassist.speech import VoskSpeechEngine, ensure_vosk_model
    return VoskSpeechEngine(ensure_vosk_model(base_dir))


def build_voice():
    if TEXT_MODE:
        return None
    from careassist.voice import Voice
    return Voice()


def build_assistant(base_dir: str) -> VoiceAssistant:
    if not is_service_up(INTENT_API_URL):
        warn(f"Intent API not reachable at {INTENT_API_URL}. Will try anyway.")
    translate = TranslateAPI(TRANSLATE_API_URL)
    coordinator = LanguageCoordinator(
        engine=build_engine(base_dir),
        identifier=translate,
        translators=translate,
        voice=build_voice(),
    )
    return VoiceAssistant(
        coordinator=coordinator,
        classifier=IntentAPI(INTENT_API_URL),
        dispatcher=RequiredSlotGuard(ConsoleDispatcher()),
    )


async def amain(base_dir: str):
    info("careassist start")
    info(f"Mode: {'UI bridge' if UI_MODE else 'Console'}{' (typed input)' if TEXT_MODE else ''} | log={LOG_LEVEL}")
    info(f"Intent API: {INTENT_API_URL} | Translate API: {TRANSLATE_API_URL}")
    assistant = build_assistant(base_dir)
    await run_console(assistant, text_mode=TEXT_MODE)
    info("careassist stopped")


def main():
    base_dir = os.path.dirname(os.path.abspath(__file__))
    try:
        ui_state("STARTING")
        asyncio.run(amain(base_dir))
    except KeyboardInterrupt:
        info("Shutdown: Ctrl+C")
    except Exception as e:
        ui_state("ERROR")
        error(f"Failed to start: {e}")
        sys.exit(1)
    finally:
        ui_state("IDLE")


if __name__ == "__main__":
    main()
