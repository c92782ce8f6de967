import socket
from urllib.parse import urlparse

import requests

from .config import HTTP_TIMEOUT_SECONDS
from .intents import ClassificationResult, Intent
from .logui import debug, warn, error


def is_port_open(host: str, port: int, timeout=0.25) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def is_service_up(url: str) -> bool:
    parsed = urlparse(url)
    if not parsed.hostname:
        return False
    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    return is_port_open(parsed.hostname, port)


class IntentAPI:
    """Client for the intent classification service (POST {"text"} -> {"intent", "confidence"})."""

    def __init__(self, url: str, timeout: float = HTTP_TIMEOUT_SECONDS, session: requests.Session | None = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_intent(self, text: str) -> dict | None:
        try:
            r = self.session.post(self.url, json={"text": text}, timeout=self.timeout)
            if r.status_code == 200:
                return r.json()
            error(f"API error: HTTP {r.status_code}")
            return None
        except requests.exceptions.RequestException as e:
            error(f"API connection error: {e}")
            return None
        except ValueError as e:
            error(f"API returned invalid JSON: {e}")
            return None

    def classify(self, text: str) -> ClassificationResult:
        data = self.get_intent(text)
        if not data:
            return ClassificationResult.unknown()
        if not isinstance(data, dict):
            warn(f"API returned {type(data).__name__}, expected an object")
            return ClassificationResult.unknown()

        label = str(data.get("intent") or "").strip()
        if not label:
            # the service blanks the label when it is unsure
            debug(f"API unsure (raw_intent={data.get('raw_intent')!r})")
            return ClassificationResult.unknown()

        intent = Intent.parse(label)
        if intent is Intent.UNKNOWN:
            warn(f"API returned unknown intent label: {label!r}")
            return ClassificationResult.unknown()

        try:
            confidence = float(data.get("confidence") or 0.0)
        except (TypeError, ValueError):
            confidence = 0.0
        return ClassificationResult(intent=intent, confidence=confidence)
