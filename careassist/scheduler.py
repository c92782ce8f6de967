import asyncio
from typing import Callable

from .logui import debug


class TransitionTimer:
    """One pending delayed transition at a time, invalidated by a generation counter.

    Every ``schedule`` or ``cancel`` bumps the generation, so a timer that was
    already due but not yet run can never apply a stale transition.
    """

    def __init__(self):
        self._generation = 0
        self._task: asyncio.Task | None = None

    def is_pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, delay_seconds: float, action: Callable[[], None], label: str = "") -> int:
        self.cancel()
        generation = self._generation
        self._task = asyncio.get_running_loop().create_task(
            self._fire(generation, max(0.0, delay_seconds), action, label)
        )
        return generation

    def cancel(self):
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def _fire(self, generation: int, delay_seconds: float, action: Callable[[], None], label: str):
        await asyncio.sleep(delay_seconds)
        if generation != self._generation:
            debug(f"Timer {label or generation}: stale, skipped")
            return
        self._task = None
        debug(f"Timer {label or generation}: fired after {delay_seconds:.2f}s")
        action()
