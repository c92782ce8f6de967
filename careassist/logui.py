import os
import sys
from datetime import datetime

# Host UI (launcher overlay) reads these prefixed lines from stdout.
UI_MODE = "--ui" in sys.argv


def enable_ui_mode(enabled: bool = True):
    global UI_MODE
    UI_MODE = enabled


def _ui(kind: str, payload: str):
    if UI_MODE:
        text = " ".join((payload or "").split())
        print(f"{kind}:{text}", flush=True)


def ui_state(name: str):
    _ui("STATE", name)


def ui_command(text: str):
    _ui("COMMAND", text)


def ui_partial(text: str):
    _ui("PARTIAL", text)


def ui_say(text: str):
    # console users read the reply in the log instead
    if UI_MODE:
        _ui("SAY", text)
    else:
        info(f"Say: {text}")


LOG_LEVEL = os.environ.get("CAREASSIST_LOG", "INFO").upper()
LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


def _ts():
    return datetime.now().strftime("%H:%M:%S")


def log(level: str, msg: str):
    if LEVELS.get(level, 20) < LEVELS.get(LOG_LEVEL, 20):
        return
    # keep stdout clean for the UI bridge protocol
    stream = sys.stderr if UI_MODE else sys.stdout
    print(f"{_ts()} [{level:<5}] {msg}", file=stream, flush=True)


def debug(msg):
    log("DEBUG", msg)

def info(msg):
    log("INFO", msg)

def warn(msg):
    log("WARN", msg)

def error(msg):
    log("ERROR", msg)
