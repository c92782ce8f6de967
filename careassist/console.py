import asyncio
import sys

from .assistant import VoiceAssistant
from .config import (
    CONFIRM_NO,
    CONFIRM_YES,
    LISTEN_PHRASES,
    QUIT_PHRASES,
    REPEAT_PHRASES,
    STOP_PHRASES,
)
from .language import CaptureError, CaptureFailed
from .logui import info


class NoMicrophone:
    """Speech engine used in typed-input mode; any capture attempt fails cleanly."""

    def start_capture(self, on_event):
        on_event(CaptureFailed(CaptureError.AUDIO))

    def stop_capture(self):
        pass

    def close(self):
        pass


def parse_command(line: str, text_mode: bool) -> tuple[str, str]:
    """Map one console (or host UI) line to an assistant operation.

    The host UI sends ``LISTEN``, ``CONFIRM``, ``CANCEL``, ``REPEAT``, ``STOP``,
    ``QUIT`` or ``TEXT:<utterance>``; people type the same words or free text.
    """
    raw = (line or "").strip()
    if raw.upper().startswith("TEXT:"):
        return "text", raw[5:].strip()

    t = " ".join(raw.lower().split())
    if t in QUIT_PHRASES:
        return "quit", ""
    if t in CONFIRM_YES:
        return "confirm", ""
    if t in CONFIRM_NO:
        return "cancel", ""
    if t in REPEAT_PHRASES:
        return "repeat", ""
    if t in STOP_PHRASES:
        return "stop", ""
    if t in LISTEN_PHRASES:
        return ("listen", "") if not text_mode else ("noop", "")
    if text_mode:
        return "text", raw
    return "noop", ""


async def handle_command(assistant: VoiceAssistant, op: str, arg: str) -> bool:
    """Run one parsed command. Returns False when the console should exit."""
    if op == "quit":
        return False
    if op == "listen":
        await assistant.start_listening()
    elif op == "stop":
        await assistant.stop_listening()
    elif op == "confirm":
        await assistant.confirm_action()
    elif op == "cancel":
        await assistant.cancel_action()
    elif op == "repeat":
        await assistant.repeat_last()
    elif op == "text" and arg:
        await assistant.process_text(arg)
    return True


async def run_console(assistant: VoiceAssistant, text_mode: bool):
    if text_mode:
        info("Type a command (yes/no to confirm, 'repeat', 'quit').")
    else:
        info("Press Enter to talk (yes/no to confirm, 'repeat', 'quit').")

    try:
        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line:
                break
            op, arg = parse_command(line, text_mode)
            if not await handle_command(assistant, op, arg):
                break
    finally:
        await assistant.close()
