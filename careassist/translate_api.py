"""HTTP client for a LibreTranslate-compatible service.

Language detection is ``POST /detect``, translation is ``POST /translate`` and
``GET /languages`` tells which language pairs the server has models for. An
``ensure_model`` call asks the server to install a missing pair through
``POST /models/install`` when the server exposes it.
"""

import requests

from .config import HTTP_TIMEOUT_SECONDS, MODEL_DOWNLOAD_TIMEOUT_SECONDS, UNDETERMINED_LANGUAGE
from .logui import debug, info, warn


def _confidence(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class TranslateAPI:
    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = HTTP_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _payload(self, **fields) -> dict:
        if self.api_key:
            fields["api_key"] = self.api_key
        return fields

    def post(self, path: str, timeout: float | None = None, **fields):
        r = self.session.post(f"{self.base_url}{path}", json=self._payload(**fields), timeout=timeout or self.timeout)
        r.raise_for_status()
        return r.json()

    def get(self, path: str):
        r = self.session.get(f"{self.base_url}{path}", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def identify(self, text: str) -> str | None:
        try:
            data = self.post("/detect", q=text)
        except (requests.exceptions.RequestException, ValueError) as e:
            warn(f"Language detection request failed: {e}")
            return None
        candidates = [d for d in data if isinstance(d, dict)] if isinstance(data, list) else []
        if not candidates:
            return UNDETERMINED_LANGUAGE
        best = max(candidates, key=lambda d: _confidence(d.get("confidence")))
        code = str(best.get("language") or "").strip().lower()
        return code or UNDETERMINED_LANGUAGE

    def available_pairs(self) -> dict[str, set[str]]:
        data = self.get("/languages")
        if not isinstance(data, list):
            raise ValueError(f"unexpected /languages payload: {type(data).__name__}")
        return {
            str(lang.get("code") or "").lower(): {str(t).lower() for t in (lang.get("targets") or [])}
            for lang in data
            if isinstance(lang, dict)
        }

    def translator(self, source_code: str, target_code: str) -> "HttpTranslator":
        return HttpTranslator(self, source_code, target_code)


class HttpTranslator:
    def __init__(self, api: TranslateAPI, source: str, target: str):
        self.api = api
        self.source = source
        self.target = target
        self._ready = False
        self._closed = False

    def _pair_available(self) -> bool:
        pairs = self.api.available_pairs()
        return self.target in pairs.get(self.source, set())

    def has_model(self) -> bool:
        if self._closed:
            return False
        if self._ready:
            return True
        try:
            return self._pair_available()
        except (requests.exceptions.RequestException, ValueError) as e:
            warn(f"Model check failed ({self.source}->{self.target}): {e}")
            return False

    def ensure_model(self) -> bool:
        if self._closed:
            return False
        if self._ready:
            return True
        try:
            if not self._pair_available():
                info(f"Downloading translation model {self.source}->{self.target}...")
                self.api.post(
                    "/models/install",
                    timeout=MODEL_DOWNLOAD_TIMEOUT_SECONDS,
                    source=self.source,
                    target=self.target,
                )
                if not self._pair_available():
                    warn(f"Translation model {self.source}->{self.target} still missing")
                    return False
        except (requests.exceptions.RequestException, ValueError) as e:
            warn(f"Model check/download failed ({self.source}->{self.target}): {e}")
            return False
        self._ready = True
        return True

    def translate(self, text: str) -> str | None:
        if self._closed:
            return None
        try:
            data = self.api.post("/translate", q=text, source=self.source, target=self.target, format="text")
        except (requests.exceptions.RequestException, ValueError) as e:
            warn(f"Translation request failed: {e}")
            return None
        if not isinstance(data, dict):
            warn(f"Unexpected translation payload: {type(data).__name__}")
            return None
        translated = str(data.get("translatedText") or "").strip()
        debug(f"Translate {self.source}->{self.target}: {text!r} -> {translated!r}")
        return translated or None

    def close(self):
        self._closed = True
        self._ready = False
