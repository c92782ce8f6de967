import asyncio
from typing import AsyncIterator, Protocol

from .config import DEFAULT_TIMINGS, SPEAK_ON_EMPTY_CANCEL, VOICE_MESSAGES, Timings
from .dispatch import ActionDispatcher
from .entities import ExtractedEntities, extract
from .followup import ConfirmationGate, PendingAction, PendingActionSlot
from .intents import CRITICAL_INTENTS, ClassificationResult, Intent
from .language import (
    CaptureFailed,
    FinalTranscript,
    LanguageCoordinator,
    PartialTranscript,
    SpeechStarted,
)
from .logui import ui_command, ui_partial, ui_say, debug, info, warn, error
from .scheduler import TransitionTimer
from .state import (
    AssistantState,
    ConfirmationRequired,
    Error,
    Idle,
    Listening,
    Processing,
    Speaking,
    StateStream,
)


class IntentClassifier(Protocol):
    def classify(self, text: str) -> ClassificationResult: ...


class VoiceAssistant:
    """Dialogue state machine: capture -> understand -> gate -> dispatch -> speak -> idle.

    All state lives here and is only touched from the event loop. Blocking
    collaborators (classifier, dispatcher) run in worker threads.
    """

    def __init__(
        self,
        coordinator: LanguageCoordinator,
        classifier: IntentClassifier,
        dispatcher: ActionDispatcher,
        timings: Timings = DEFAULT_TIMINGS,
        critical_intents: frozenset[Intent] = CRITICAL_INTENTS,
        speak_on_empty_cancel: bool = SPEAK_ON_EMPTY_CANCEL,
    ):
        self.coordinator = coordinator
        self.classifier = classifier
        self.dispatcher = dispatcher
        self.timings = timings
        self.critical_intents = critical_intents
        self.speak_on_empty_cancel = speak_on_empty_cancel

        self.states = StateStream(Idle())
        self.timer = TransitionTimer()
        self.follow_up = PendingActionSlot()
        self.last_message = ""
        self._last_language = coordinator.baseline
        self._capture_task: asyncio.Task | None = None
        self._busy = False

    @property
    def state(self) -> AssistantState:
        return self.states.value

    @property
    def pending_action(self) -> PendingAction | None:
        return self.follow_up.get_pending()

    @property
    def busy(self) -> bool:
        return self._busy

    def subscribe(self) -> AsyncIterator[AssistantState]:
        return self.states.subscribe()

    # -- state helpers -------------------------------------------------

    def _set_state(self, state: AssistantState, force: bool = False):
        # any new state invalidates a pending idle/error timer
        self.timer.cancel()
        self.states.publish(state, force=force)

    def _return_to_idle(self):
        self.states.publish(Idle())

    def _say(self, message: str, language: str):
        self.last_message = message
        self._last_language = language
        ui_say(message)
        self.coordinator.speak(message, language)

    def _speak(self, message: str, language: str):
        # repeating the same message still counts as a new Speaking turn
        self._set_state(Speaking(message), force=True)
        self._say(message, language)
        self.timer.schedule(self.timings.speaking_seconds(message), self._return_to_idle, "speaking")

    def _fail(self, message: str):
        self._set_state(Error(message))
        self.timer.schedule(self.timings.error_reset_seconds, self._return_to_idle, "error")

    def _require_confirmation(
        self,
        message: str,
        intent: Intent,
        entities: ExtractedEntities,
        language: str,
        gate: ConfirmationGate,
    ):
        if self.follow_up.is_pending():
            debug(f"Replacing pending {self.follow_up.get_pending().intent.value}")
        self.follow_up.set_pending(PendingAction(intent, entities, language, gate))
        self._set_state(ConfirmationRequired(message, intent, entities, gate))
        info(f"Confirm ({gate.value}): {intent.value}")
        self._say(message, language)

    # -- capture -------------------------------------------------------

    async def start_listening(self):
        if self._busy:
            warn("Still processing the last command; start ignored")
            return
        await self._cancel_capture()
        self._set_state(Listening())
        info("Command: listening...")
        self._capture_task = asyncio.get_running_loop().create_task(self._capture_loop())

    async def stop_listening(self):
        if self._busy:
            self.coordinator.stop_capture()
            return
        await self._cancel_capture()
        self.coordinator.stop_capture()
        self._set_state(Idle())

    async def _cancel_capture(self):
        task, self._capture_task = self._capture_task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _capture_loop(self):
        final = None
        events = self.coordinator.listen()
        try:
            async for event in events:
                if isinstance(event, SpeechStarted):
                    self._set_state(Listening())
                elif isinstance(event, PartialTranscript):
                    ui_partial(event.text)
                    self._set_state(Listening(event.text))
                elif isinstance(event, CaptureFailed):
                    self._fail(event.error.message)
                    return
                elif isinstance(event, FinalTranscript):
                    final = event
                    break
        finally:
            await events.aclose()

        if final is None:
            return
        ui_command(final.text)
        info(f'Heard: "{final.text}" (confidence {final.confidence:.2f})')
        await self._process(final.text, final.confidence)

    # -- understanding -------------------------------------------------

    async def process_text(self, text: str):
        """Run typed (or externally transcribed) input through the same pipeline."""
        if self._busy:
            warn("Still processing the last command; input ignored")
            return
        await self._cancel_capture()
        self.coordinator.stop_capture()
        ui_command(text)
        await self._process(text, 1.0)

    async def _process(self, text: str, confidence: float):
        self._busy = True
        self._set_state(Processing())
        try:
            result = await self.coordinator.resolve(text, confidence)
            await self._understand(result.baseline_text, result.detected_language)
        except Exception as e:
            error(f"Error processing command: {e}")
            self._fail(VOICE_MESSAGES["internal_error"])
        finally:
            self._busy = False

    async def _understand(self, text: str, language: str):
        classification = await asyncio.to_thread(self.classifier.classify, text)
        info(f"Intent: {classification.intent.value}, confidence: {classification.confidence:.2f}")

        if not classification.is_above_threshold:
            self._speak(VOICE_MESSAGES["reprompt"], language)
            return

        intent = classification.intent
        entities = extract(text, intent)

        if intent in self.critical_intents:
            self._require_confirmation(
                VOICE_MESSAGES["confirm_policy"], intent, entities, language, ConfirmationGate.POLICY
            )
            return

        await self._execute(intent, entities, language, confirmed=False)

    async def _execute(self, intent: Intent, entities: ExtractedEntities, language: str, confirmed: bool):
        result = await asyncio.to_thread(self.dispatcher.dispatch, intent, entities)
        debug(f"Result for {intent.value}: {result}")

        if result.requires_permission:
            warn(f"Permission required for {intent.value}: {result.requires_permission}")
            self._speak(VOICE_MESSAGES["permission"], language)
        elif result.requires_confirmation and not confirmed:
            self._require_confirmation(result.message, intent, entities, language, ConfirmationGate.DISPATCHER)
        elif result.success:
            self._speak(result.message, language)
        else:
            self._speak(result.message or VOICE_MESSAGES["failed"], language)

    # -- confirmation --------------------------------------------------

    async def confirm_action(self):
        if self._busy:
            warn("Still processing; confirm ignored")
            return
        pending = self.follow_up.take()
        if pending is None:
            debug("Confirm with nothing pending")
            return
        await self._cancel_capture()
        self.coordinator.stop_capture()

        info(f"Confirmed: {pending.intent.value}")
        self._busy = True
        self._set_state(Processing())
        try:
            await self._execute(pending.intent, pending.entities, pending.language, confirmed=True)
        except Exception as e:
            error(f"Exec failed: {e}")
            self._fail(VOICE_MESSAGES["internal_error"])
        finally:
            self._busy = False

    async def cancel_action(self):
        if self._busy:
            warn("Still processing; cancel ignored")
            return
        pending = self.follow_up.take()
        if pending is None:
            debug("Cancel with nothing pending")
            if self.speak_on_empty_cancel:
                self._speak(VOICE_MESSAGES["cancelled"], self.coordinator.baseline)
            return
        await self._cancel_capture()
        self.coordinator.stop_capture()
        info(f"Cancelled: {pending.intent.value}")
        self._speak(VOICE_MESSAGES["cancelled"], pending.language)

    async def repeat_last(self):
        if self._busy or not self.last_message:
            return
        self._speak(self.last_message, self._last_language)

    async def close(self):
        self.timer.cancel()
        await self._cancel_capture()
        self.coordinator.release()
        self.states.publish(Idle())
