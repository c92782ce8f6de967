"""Rule-based slot filling for classified commands.

Every extractor is total: it returns ``None`` for an absent slot and never
raises. Rules inside an extractor are ordered and the first match wins.
"""

import re
from dataclasses import asdict, dataclass
from datetime import datetime

from .config import APP_SYNONYMS, LOCATION_CATEGORIES
from .intents import Intent
from .logui import debug


@dataclass(frozen=True)
class ExtractedEntities:
    raw_text: str
    contact_name: str | None = None
    phone_number: str | None = None
    time: datetime | None = None
    duration: int | None = None  # minutes
    app_name: str | None = None
    medication_name: str | None = None
    number: int | None = None
    location: str | None = None

    def slots(self) -> dict:
        """Populated slots only, without the raw text."""
        return {k: v for k, v in asdict(self).items() if k != "raw_text" and v is not None}


_CONTACT_TRIGGER_RE = re.compile(r"\b(?:call|phone|dial|ring|message|text|whatsapp|sms|contact)\s+")
_POLITE_RE = re.compile(r"\s+(?:please|now)\b")
_MY_RE = re.compile(r"\bmy\s+(\w+)")
_PHONE_RE = re.compile(r"\+?\d[\d\s-]{4,}\d")

_AMPM_RE = re.compile(r"(\d{1,2})\s*(am|pm)")
_HHMM_RE = re.compile(r"(\d{1,2})[:\s](\d{2})")
_HOUR_RE = re.compile(r"(\d{1,2})\s*(?:o'?clock)?")

_MINUTES_RE = re.compile(r"(\d+)\s*(?:minute|min)")
_SECONDS_RE = re.compile(r"(\d+)\s*(?:second|sec)")
_HOURS_RE = re.compile(r"(\d+)\s*(?:hour|hr)")
_NUMBER_RE = re.compile(r"(\d+)")

_APP_VERB_RE = re.compile(r"\b(?:open|launch|start|run)\s+")
_MEDICATION_FILLER_RE = re.compile(r"\b(?:i took|took|take|medicine|pill|medication|tablet|my)\s+")
_LOCATION_TRIGGER_RE = re.compile(r"\b(?:nearest|nearby|find|search|locate)\s+")

_TOKEN_PUNCT = ".,!?;:\"'"


def capitalize_first(word: str) -> str:
    if word and word[0].islower():
        return word[0].upper() + word[1:]
    return word


def _first_token(text: str) -> str | None:
    for tok in text.split():
        tok = tok.strip(_TOKEN_PUNCT)
        if tok:
            return tok
    return None


def _normalize(text: str) -> str:
    return " ".join((text or "").lower().split())


def extract_contact_name(text: str) -> str | None:
    cleaned = _CONTACT_TRIGGER_RE.sub("", _normalize(text))
    cleaned = _POLITE_RE.sub("", cleaned).strip()

    m = _MY_RE.search(cleaned)
    if m:
        return capitalize_first(m.group(1))

    tok = _first_token(cleaned)
    return capitalize_first(tok) if tok else None


def extract_phone_number(text: str) -> str | None:
    for m in _PHONE_RE.finditer(text or ""):
        raw = m.group(0)
        digits = re.sub(r"\D", "", raw)
        if len(digits) < 6:
            continue
        return ("+" + digits) if raw.startswith("+") else digits
    return None


def _clock(hour: int, minute: int, now: datetime | None) -> datetime | None:
    if hour > 23 or minute > 59:
        return None
    base = now or datetime.now()
    return base.replace(hour=hour, minute=minute, second=0, microsecond=0)


def extract_time(text: str, now: datetime | None = None) -> datetime | None:
    t = _normalize(text)

    m = _AMPM_RE.search(t)
    if m:
        hour = int(m.group(1))
        if m.group(2) == "pm" and hour != 12:
            hour += 12
        if m.group(2) == "am" and hour == 12:
            hour = 0
        return _clock(hour, 0, now)

    m = _HHMM_RE.search(t)
    if m:
        return _clock(int(m.group(1)), int(m.group(2)), now)

    # catch-all; only safe because alarm/appointment intents gate it
    m = _HOUR_RE.search(t)
    if m:
        return _clock(int(m.group(1)), 0, now)

    return None


def extract_duration(text: str) -> int | None:
    t = _normalize(text)

    m = _MINUTES_RE.search(t)
    if m:
        return int(m.group(1))

    m = _SECONDS_RE.search(t)
    if m:
        return max(1, int(m.group(1)) // 60)

    m = _HOURS_RE.search(t)
    if m:
        return int(m.group(1)) * 60

    m = _NUMBER_RE.search(t)
    if m:
        return int(m.group(1))

    return None


def extract_app_name(text: str) -> str | None:
    cleaned = _APP_VERB_RE.sub("", _normalize(text)).strip()
    for keywords, canonical in APP_SYNONYMS:
        if any(k in cleaned for k in keywords):
            return canonical
    tok = _first_token(cleaned)
    return capitalize_first(tok) if tok else None


def extract_medication_name(text: str) -> str | None:
    cleaned = _MEDICATION_FILLER_RE.sub("", _normalize(text)).strip()
    tok = _first_token(cleaned)
    return capitalize_first(tok) if tok else None


def extract_location(text: str) -> str | None:
    cleaned = _LOCATION_TRIGGER_RE.sub("", _normalize(text)).strip()
    for keywords, category in LOCATION_CATEGORIES:
        if any(k in cleaned for k in keywords):
            return category
    return cleaned or None


def extract_number(text: str) -> int | None:
    m = _NUMBER_RE.search(text or "")
    if not m:
        return None
    return int(m.group(1))


INTENT_SLOTS = {
    Intent.CALL_CONTACT: ("contact_name", "phone_number"),
    Intent.SEND_MESSAGE: ("contact_name", "phone_number"),
    Intent.CAREGIVER_CONTACT: ("contact_name",),
    Intent.SET_ALARM: ("time",),
    Intent.SET_TIMER: ("duration",),
    Intent.OPEN_APP: ("app_name",),
    Intent.MEDICATION_ADD: ("medication_name",),
    Intent.MEDICATION_LOG_TAKEN: ("medication_name",),
    Intent.MEDICATION_QUERY: ("medication_name",),
    Intent.SEARCH_LOCATION: ("location",),
    Intent.APPOINTMENT_CREATE: ("location", "time"),
    Intent.HEALTH_RECORD: ("number",),
}

_EXTRACTORS = {
    "contact_name": extract_contact_name,
    "phone_number": extract_phone_number,
    "duration": extract_duration,
    "app_name": extract_app_name,
    "medication_name": extract_medication_name,
    "location": extract_location,
    "number": extract_number,
}


def extract(text: str, intent: Intent, now: datetime | None = None) -> ExtractedEntities:
    text = text or ""
    values = {}
    for slot in INTENT_SLOTS.get(intent, ()):
        if slot == "time":
            values[slot] = extract_time(text, now)
        else:
            values[slot] = _EXTRACTORS[slot](text)
    entities = ExtractedEntities(raw_text=text, **values)
    debug(f"Entities for {intent.value}: {entities.slots()}")
    return entities
