import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Protocol

from .config import VOICE_MESSAGES
from .entities import ExtractedEntities
from .intents import Intent
from .logui import debug, info


@dataclass(frozen=True)
class ActionResult:
    success: bool
    message: str
    requires_permission: str | None = None
    requires_confirmation: bool = False


class ActionDispatcher(Protocol):
    def dispatch(self, intent: Intent, entities: ExtractedEntities) -> ActionResult: ...


# slot that must be present, and the question asked when it is not
REQUIRED_SLOTS = {
    Intent.OPEN_APP: ("app_name", "Which app would you like to open?"),
    Intent.CALL_CONTACT: ("contact_name", "Who would you like to call?"),
    Intent.SEND_MESSAGE: ("contact_name", "Who would you like to message?"),
    Intent.SET_ALARM: ("time", "What time should I set the alarm for?"),
    Intent.SET_TIMER: ("duration", "How long should the timer be?"),
    Intent.MEDICATION_LOG_TAKEN: ("medication_name", "Which medicine did you take?"),
    Intent.SEARCH_LOCATION: ("location", "What place should I look for?"),
}


def missing_slot_result(intent: Intent, entities: ExtractedEntities) -> ActionResult | None:
    rule = REQUIRED_SLOTS.get(intent)
    if rule is None:
        return None
    slot, question = rule
    if getattr(entities, slot) is not None:
        return None
    # a dialled number is as good as a name
    if slot == "contact_name" and entities.phone_number:
        return None
    return ActionResult(False, question)


class RequiredSlotGuard:
    """Asks for a missing slot instead of handing an incomplete command to the device."""

    def __init__(self, inner: ActionDispatcher):
        self.inner = inner

    def dispatch(self, intent: Intent, entities: ExtractedEntities) -> ActionResult:
        missing = missing_slot_result(intent, entities)
        if missing is not None:
            debug(f"Missing slot for {intent.value}: {missing.message}")
            return missing
        return self.inner.dispatch(intent, entities)


def _clock_text(t: datetime) -> str:
    return t.strftime("%I:%M %p").lstrip("0")


def _who(e: ExtractedEntities) -> str:
    return e.contact_name or e.phone_number or "them"


_JOKES = (
    "Why don't scientists trust atoms? Because they make up everything!",
    "What do you call a fake noodle? An impasta!",
    "Why did the scarecrow win an award? He was outstanding in his field!",
    "What do you call a bear with no teeth? A gummy bear!",
)


def _greeting(now: datetime) -> str:
    if now.hour < 12:
        return "Good morning!"
    if now.hour < 17:
        return "Good afternoon!"
    return "Good evening!"


Response = Callable[[ExtractedEntities], ActionResult]


def _say(message: str, confirm: bool = False) -> Response:
    return lambda e: ActionResult(True, message, requires_confirmation=confirm)


RESPONSES: dict[Intent, Response] = {
    Intent.OPEN_CAMERA: _say("Opening camera"),
    Intent.TAKE_SELFIE: _say("Opening camera for selfie"),
    Intent.RECORD_VIDEO: _say("Opening video camera"),
    Intent.OPEN_GALLERY: _say("Opening gallery"),
    Intent.OPEN_APP: lambda e: ActionResult(True, f"Opening {e.app_name}"),
    Intent.CALL_CONTACT: lambda e: ActionResult(True, f"Opening phone to call {_who(e)}", requires_confirmation=True),
    Intent.SEND_MESSAGE: lambda e: ActionResult(True, f"Opening messages to text {_who(e)}", requires_confirmation=True),
    Intent.SET_ALARM: lambda e: ActionResult(True, f"Setting alarm for {_clock_text(e.time)}"),
    Intent.SET_TIMER: lambda e: ActionResult(True, f"Setting timer for {e.duration} minutes"),
    Intent.FLASHLIGHT_ON: _say("Flashlight turned on"),
    Intent.FLASHLIGHT_OFF: _say("Flashlight turned off"),
    Intent.OPEN_SETTINGS: _say("Opening settings"),
    Intent.READ_NOTIFICATIONS: _say("You have no new notifications"),
    Intent.VOLUME_CONTROL: _say("Adjusting the volume"),
    Intent.CHECK_BATTERY: _say("Let me check your battery"),
    Intent.MEDICATION_LIST_TODAY: _say("Opening your medication list"),
    Intent.MEDICATION_LOG_TAKEN: lambda e: ActionResult(True, f"Marked {e.medication_name} as taken"),
    Intent.MEDICATION_LOG_SKIP: _say("Skipped your medication", confirm=True),
    Intent.MEDICATION_ADD: _say("Opening medication form"),
    Intent.MEDICATION_QUERY: _say("Let me check your medication schedule"),
    Intent.MEDICATION_HISTORY: _say("Opening medication history"),
    Intent.MEDICATION_REMINDER_CHANGE: _say("Opening medication settings"),
    Intent.MEDICATION_DELETE: _say("Are you sure you want to remove this medication?", confirm=True),
    Intent.MEDICATION_INSTRUCTIONS: _say("Let me show you the medication instructions"),
    Intent.MEDICATION_SIDE_EFFECTS: _say("I'll look up the side effects for you"),
    Intent.MEDICATION_INTERACTION: _say("Let me check if these medications are safe together"),
    Intent.MEDICATION_REFILL: _say("I'll help you refill your prescription"),
    Intent.APPOINTMENT_CREATE: _say("Opening appointment scheduler"),
    Intent.APPOINTMENT_LIST: _say("Opening your appointments"),
    Intent.APPOINTMENT_CANCEL: _say("Are you sure you want to cancel this appointment?", confirm=True),
    Intent.SOS_TRIGGER: _say("Activating emergency assistance", confirm=True),
    Intent.HEALTH_CHECKIN_START: _say("Starting health check-in"),
    Intent.HEALTH_SUMMARY: _say("Opening health summary"),
    Intent.HEALTH_RECORD: _say("Recording your health data"),
    Intent.CAREGIVER_CONTACT: lambda e: ActionResult(True, f"Calling your {e.contact_name or 'caregiver'}", requires_confirmation=True),
    Intent.QUERY_TIME: lambda e: ActionResult(True, f"The time is {_clock_text(datetime.now())}"),
    Intent.QUERY_DATE: lambda e: ActionResult(True, f"Today is {datetime.now().strftime('%A, %B %d')}"),
    Intent.FIND_PHONE: _say("Playing ringtone... I am here!"),
    Intent.REPEAT_LAST: _say("I'll repeat the last message"),
    Intent.READ_SCREEN: _say("I'll read what's on screen"),
    Intent.BRIGHTNESS_CONTROL: _say("Opening display settings"),
    Intent.DO_NOT_DISTURB: _say("Opening do not disturb settings"),
    Intent.SCREEN_LOCK: _say("Opening screen lock settings"),
    Intent.WEB_SEARCH: lambda e: ActionResult(True, f"Searching for {e.raw_text}"),
    Intent.QA_FACT: lambda e: ActionResult(True, f"Searching for {e.raw_text}"),
    Intent.QA_WEATHER: _say("Checking the weather"),
    Intent.QA_NEWS: _say("Opening today's news"),
    Intent.QA_DEFINITION: lambda e: ActionResult(True, f"Looking up {e.raw_text}"),
    Intent.QA_HEALTH_INFO: lambda e: ActionResult(True, f"Looking up {e.raw_text}"),
    Intent.SEARCH_LOCATION: lambda e: ActionResult(True, f"Searching for {e.location}"),
    Intent.QA_CALCULATION: _say("Let me calculate that"),
    Intent.QA_CONVERSION: _say("Let me convert that"),
    Intent.QA_MEDICINE_INFO: lambda e: ActionResult(True, f"Looking up {e.raw_text}"),
    Intent.SMALL_TALK_GREET: lambda e: ActionResult(True, f"{_greeting(datetime.now())} How can I help you?"),
    Intent.SMALL_TALK_THANKS: _say("You're welcome! Happy to help anytime."),
    Intent.SMALL_TALK_FEELINGS: _say("I'm doing great! How are you today?"),
    Intent.SMALL_TALK_JOKE: lambda e: ActionResult(True, random.choice(_JOKES)),
    Intent.SMALL_TALK_ENCOURAGE: _say("You're doing great! Keep going, I believe in you!"),
    Intent.SMALL_TALK_GOODBYE: _say("Goodbye! Have a wonderful day!"),
    Intent.SMALL_TALK_HELP: _say("I can help you with calls, messages, medications, appointments, and much more. Just ask!"),
}


class ConsoleDispatcher:
    """Stand-in device dispatcher: logs the action and answers with what it would do."""

    def dispatch(self, intent: Intent, entities: ExtractedEntities) -> ActionResult:
        info(f"Exec: {intent.value} {entities.slots()}")
        response = RESPONSES.get(intent)
        if response is None:
            return ActionResult(False, VOICE_MESSAGES["not_supported"])
        return response(entities)
