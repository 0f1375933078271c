from __future__ import annotations

import asyncio

from chatgpt_desk.display.dispatcher import UpdateQueue
from chatgpt_desk.display.updates import SpinnerFrame

_SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"


class Spinner:
    """Busy indicator ticking on the event loop.

    Frames are posted to the update queue like any other update, so the
    dispatcher stays the only code that writes to the screen.
    """

    def __init__(self, updates: UpdateQueue, label: str = " Generating image...", interval: float = 0.08):
        self._updates = updates
        self._label = label
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="spinner")

    def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        i = 0
        while True:
            self._updates.post(SpinnerFrame(_SPINNER_FRAMES[i % len(_SPINNER_FRAMES)] + self._label))
            i += 1
            await asyncio.sleep(self._interval)
