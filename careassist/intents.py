from dataclasses import dataclass
from enum import Enum

from .config import CONFIDENCE_THRESHOLD, CRITICAL_INTENT_NAMES


class IntentCategory(Enum):
    PHONE_CONTROL = "phone_control"
    MEDICATION = "medication"
    HEALTH = "health"
    CONVENIENCE = "convenience"
    WEB_KNOWLEDGE = "web_knowledge"
    SMALL_TALK = "small_talk"
    UNKNOWN = "unknown"


class Intent(Enum):
    # phone control
    OPEN_CAMERA = "OPEN_CAMERA"
    TAKE_SELFIE = "TAKE_SELFIE"
    RECORD_VIDEO = "RECORD_VIDEO"
    OPEN_GALLERY = "OPEN_GALLERY"
    OPEN_APP = "OPEN_APP"
    CALL_CONTACT = "CALL_CONTACT"
    SEND_MESSAGE = "SEND_MESSAGE"
    SET_ALARM = "SET_ALARM"
    SET_TIMER = "SET_TIMER"
    FLASHLIGHT_ON = "FLASHLIGHT_ON"
    FLASHLIGHT_OFF = "FLASHLIGHT_OFF"
    OPEN_SETTINGS = "OPEN_SETTINGS"
    READ_NOTIFICATIONS = "READ_NOTIFICATIONS"
    VOLUME_CONTROL = "VOLUME_CONTROL"
    CHECK_BATTERY = "CHECK_BATTERY"

    # medication
    MEDICATION_LIST_TODAY = "MEDICATION_LIST_TODAY"
    MEDICATION_LOG_TAKEN = "MEDICATION_LOG_TAKEN"
    MEDICATION_LOG_SKIP = "MEDICATION_LOG_SKIP"
    MEDICATION_ADD = "MEDICATION_ADD"
    MEDICATION_QUERY = "MEDICATION_QUERY"
    MEDICATION_HISTORY = "MEDICATION_HISTORY"
    MEDICATION_REMINDER_CHANGE = "MEDICATION_REMINDER_CHANGE"
    MEDICATION_DELETE = "MEDICATION_DELETE"
    MEDICATION_INSTRUCTIONS = "MEDICATION_INSTRUCTIONS"
    MEDICATION_SIDE_EFFECTS = "MEDICATION_SIDE_EFFECTS"
    MEDICATION_INTERACTION = "MEDICATION_INTERACTION"
    MEDICATION_REFILL = "MEDICATION_REFILL"

    # health & appointments
    APPOINTMENT_CREATE = "APPOINTMENT_CREATE"
    APPOINTMENT_LIST = "APPOINTMENT_LIST"
    APPOINTMENT_CANCEL = "APPOINTMENT_CANCEL"
    SOS_TRIGGER = "SOS_TRIGGER"
    HEALTH_CHECKIN_START = "HEALTH_CHECKIN_START"
    HEALTH_SUMMARY = "HEALTH_SUMMARY"
    HEALTH_RECORD = "HEALTH_RECORD"
    CAREGIVER_CONTACT = "CAREGIVER_CONTACT"

    # convenience
    QUERY_TIME = "QUERY_TIME"
    QUERY_DATE = "QUERY_DATE"
    FIND_PHONE = "FIND_PHONE"
    REPEAT_LAST = "REPEAT_LAST"
    READ_SCREEN = "READ_SCREEN"
    BRIGHTNESS_CONTROL = "BRIGHTNESS_CONTROL"
    DO_NOT_DISTURB = "DO_NOT_DISTURB"
    SCREEN_LOCK = "SCREEN_LOCK"

    # web knowledge
    WEB_SEARCH = "WEB_SEARCH"
    QA_FACT = "QA_FACT"
    QA_WEATHER = "QA_WEATHER"
    QA_NEWS = "QA_NEWS"
    QA_DEFINITION = "QA_DEFINITION"
    QA_HEALTH_INFO = "QA_HEALTH_INFO"
    SEARCH_LOCATION = "SEARCH_LOCATION"
    QA_CALCULATION = "QA_CALCULATION"
    QA_CONVERSION = "QA_CONVERSION"
    QA_MEDICINE_INFO = "QA_MEDICINE_INFO"

    # small talk
    SMALL_TALK_GREET = "SMALL_TALK_GREET"
    SMALL_TALK_THANKS = "SMALL_TALK_THANKS"
    SMALL_TALK_FEELINGS = "SMALL_TALK_FEELINGS"
    SMALL_TALK_JOKE = "SMALL_TALK_JOKE"
    SMALL_TALK_ENCOURAGE = "SMALL_TALK_ENCOURAGE"
    SMALL_TALK_GOODBYE = "SMALL_TALK_GOODBYE"
    SMALL_TALK_HELP = "SMALL_TALK_HELP"

    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, name: str | None) -> "Intent":
        """Map a classifier label ("call_contact", "Call Contact", ...) to an Intent."""
        key = " ".join((name or "").strip().split()).replace(" ", "_").upper()
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN

    @property
    def category(self) -> IntentCategory:
        return _CATEGORIES.get(self, IntentCategory.UNKNOWN)

    @property
    def is_critical(self) -> bool:
        return self in CRITICAL_INTENTS


def _build_categories() -> dict[Intent, IntentCategory]:
    health = {
        Intent.APPOINTMENT_CREATE, Intent.APPOINTMENT_LIST, Intent.APPOINTMENT_CANCEL,
        Intent.SOS_TRIGGER, Intent.HEALTH_CHECKIN_START, Intent.HEALTH_SUMMARY,
        Intent.HEALTH_RECORD, Intent.CAREGIVER_CONTACT,
    }
    convenience = {
        Intent.QUERY_TIME, Intent.QUERY_DATE, Intent.FIND_PHONE, Intent.REPEAT_LAST,
        Intent.READ_SCREEN, Intent.BRIGHTNESS_CONTROL, Intent.DO_NOT_DISTURB, Intent.SCREEN_LOCK,
    }
    out = {}
    for intent in Intent:
        name = intent.value
        if intent is Intent.UNKNOWN:
            continue
        if name.startswith("MEDICATION_"):
            out[intent] = IntentCategory.MEDICATION
        elif name.startswith("SMALL_TALK_"):
            out[intent] = IntentCategory.SMALL_TALK
        elif intent in health:
            out[intent] = IntentCategory.HEALTH
        elif intent in convenience:
            out[intent] = IntentCategory.CONVENIENCE
        elif name.startswith("QA_") or intent in (Intent.WEB_SEARCH, Intent.SEARCH_LOCATION):
            out[intent] = IntentCategory.WEB_KNOWLEDGE
        else:
            out[intent] = IntentCategory.PHONE_CONTROL
    return out


_CATEGORIES = _build_categories()

CRITICAL_INTENTS = frozenset(Intent(name) for name in CRITICAL_INTENT_NAMES)


@dataclass(frozen=True)
class ClassificationResult:
    intent: Intent
    confidence: float
    threshold: float = CONFIDENCE_THRESHOLD

    @property
    def is_above_threshold(self) -> bool:
        return self.confidence >= self.threshold

    @classmethod
    def unknown(cls) -> "ClassificationResult":
        return cls(intent=Intent.UNKNOWN, confidence=0.0)
