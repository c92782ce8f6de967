import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, ClassVar

from .entities import ExtractedEntities
from .followup import ConfirmationGate
from .intents import Intent
from .logui import ui_state


@dataclass(frozen=True)
class Idle:
    name: ClassVar[str] = "IDLE"


@dataclass(frozen=True)
class Listening:
    partial_text: str | None = None
    name: ClassVar[str] = "LISTENING"


@dataclass(frozen=True)
class Processing:
    name: ClassVar[str] = "PROCESSING"


@dataclass(frozen=True)
class Speaking:
    message: str
    name: ClassVar[str] = "SPEAKING"


@dataclass(frozen=True)
class ConfirmationRequired:
    message: str
    intent: Intent
    entities: ExtractedEntities
    gate: ConfirmationGate = ConfirmationGate.POLICY
    name: ClassVar[str] = "CONFIRM"


@dataclass(frozen=True)
class Error:
    message: str
    name: ClassVar[str] = "ERROR"


AssistantState = Idle | Listening | Processing | Speaking | ConfirmationRequired | Error


class StateStream:
    """Current state plus fan-out to any number of async subscribers."""

    def __init__(self, initial: AssistantState | None = None):
        self._value: AssistantState = initial or Idle()
        self._subscribers: list[asyncio.Queue] = []

    @property
    def value(self) -> AssistantState:
        return self._value

    def publish(self, state: AssistantState, force: bool = False):
        if state == self._value and not force:
            return
        changed_kind = type(state) is not type(self._value)
        self._value = state
        if changed_kind or force:
            ui_state(state.name)
        for q in self._subscribers:
            q.put_nowait(state)

    async def subscribe(self) -> AsyncIterator[AssistantState]:
        q: asyncio.Queue = asyncio.Queue()
        q.put_nowait(self._value)
        self._subscribers.append(q)
        try:
            while True:
                yield await q.get()
        finally:
            self._subscribers.remove(q)
