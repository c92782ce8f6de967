from dataclasses import dataclass
from enum import Enum

from .entities import ExtractedEntities
from .intents import Intent


class ConfirmationGate(Enum):
    POLICY = "policy"          # critical intent, asked before dispatch
    DISPATCHER = "dispatcher"  # dispatcher reported the action needs a yes


@dataclass(frozen=True)
class PendingAction:
    intent: Intent
    entities: ExtractedEntities
    language: str
    gate: ConfirmationGate = ConfirmationGate.POLICY


class PendingActionSlot:
    """Holds at most one action awaiting a yes/no. Newer requests replace older ones."""

    def __init__(self):
        self._pending: PendingAction | None = None

    def set_pending(self, pending: PendingAction):
        self._pending = pending

    def get_pending(self) -> PendingAction | None:
        return self._pending

    def take(self) -> PendingAction | None:
        pending, self._pending = self._pending, None
        return pending

    def clear_pending(self):
        self._pending = None

    def is_pending(self) -> bool:
        return self._pending is not None
