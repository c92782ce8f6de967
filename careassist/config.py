import os
from dataclasses import dataclass

INTENT_API_URL = os.environ.get("CAREASSIST_INTENT_URL", "http://127.0.0.1:8008/predict")
TRANSLATE_API_URL = os.environ.get("CAREASSIST_TRANSLATE_URL", "http://127.0.0.1:5000")
HTTP_TIMEOUT_SECONDS = 5
# model downloads can take a while on first use
MODEL_DOWNLOAD_TIMEOUT_SECONDS = 120

CONFIDENCE_THRESHOLD = 0.6

CRITICAL_INTENT_NAMES = {
    "CALL_CONTACT",
    "SEND_MESSAGE",
    "CAREGIVER_CONTACT",
    "SOS_TRIGGER",
    "MEDICATION_DELETE",
    "APPOINTMENT_CANCEL",
}

# Cancel with nothing pending: stay silent unless enabled.
SPEAK_ON_EMPTY_CANCEL = False


@dataclass(frozen=True)
class Timings:
    speak_ms_per_char: int = 50
    speak_min_seconds: float = 2.0
    error_reset_seconds: float = 3.0

    def speaking_seconds(self, message: str) -> float:
        return max(len(message or "") * self.speak_ms_per_char / 1000.0, self.speak_min_seconds)


DEFAULT_TIMINGS = Timings()


BASELINE_LANGUAGE = "en"

# code -> (display name, locale tag, translation service code)
LANGUAGE_TABLE = {
    "en": ("English", "en-IN", "en"),
    "hi": ("हिन्दी", "hi-IN", "hi"),
    "ta": ("தமிழ்", "ta-IN", "ta"),
    "te": ("తెలుగు", "te-IN", "te"),
    "ml": ("മലയാളം", "ml-IN", "ml"),
}

UNDETERMINED_LANGUAGE = "und"


VOICE_MESSAGES = {
    "reprompt": "I'm not sure I understood that. Could you say it again?",
    "confirm_policy": "This action requires confirmation. Would you like to proceed?",
    "permission": "I need permission to do that. Please grant the required permission.",
    "cancelled": "Action cancelled",
    "failed": "Sorry, I couldn't do that",
    "internal_error": "Sorry, something went wrong",
    "not_supported": "I don't know how to do that yet",
}


# Checked in order; first entry whose keyword is contained in the text wins.
APP_SYNONYMS = (
    (("whatsapp",), "WhatsApp"),
    (("youtube",), "YouTube"),
    (("maps", "google maps"), "Google Maps"),
    (("gmail",), "Gmail"),
    (("facebook",), "Facebook"),
    (("instagram",), "Instagram"),
    (("chrome",), "Chrome"),
    (("spotify",), "Spotify"),
    (("messenger",), "Messenger"),
    (("twitter",), "Twitter"),
    (("telegram",), "Telegram"),
    (("linkedin",), "LinkedIn"),
    (("netflix",), "Netflix"),
)

LOCATION_CATEGORIES = (
    (("hospital",), "hospital"),
    (("pharmacy", "medical store"), "pharmacy"),
    (("clinic",), "clinic"),
    (("doctor",), "doctor"),
    (("emergency",), "emergency room"),
)


SAMPLE_RATE = 16000
CHUNK_SAMPLES = 4000
FRAME_MS = 250
VAD_START_THRESHOLD = 250
VAD_SILENCE_MS = 650
LISTEN_MAX_SECONDS = 8
LISTEN_MIN_MS = 2000

VOSK_MODEL_NAME = "vosk-model-small-en-in-0.4"
VOSK_MODEL_URL = f"https://alphacephei.com/vosk/models/{VOSK_MODEL_NAME}.zip"
VOSK_MODEL_DIR = os.environ.get("CAREASSIST_VOSK_DIR", "")

TTS_RATE = 160
TTS_VOLUME = 0.9


CONFIRM_YES = {"yes", "confirm", "do it", "sure", "ok", "okay", "proceed", "go ahead"}
CONFIRM_NO = {"no", "cancel", "don't", "do not", "never mind", "abort"}
REPEAT_PHRASES = {"repeat", "repeat that", "say again", "say that again", "again"}
LISTEN_PHRASES = {"", "listen", "mic"}
STOP_PHRASES = {"stop", "stop listening"}
QUIT_PHRASES = {"quit", "exit", "bye"}
