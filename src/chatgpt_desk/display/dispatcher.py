from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from chatgpt_desk.display.updates import BusyChanged, DisplaySink, DisplayUpdate

if TYPE_CHECKING:
    from chatgpt_desk.display.spinner import Spinner

_STOP = object()


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class UpdateQueue:
    """FIFO of display updates with a single consumer.

    ``post`` may be called from the event loop or from worker threads; calls
    from other threads are handed to the loop with ``call_soon_threadsafe``.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def post(self, update: DisplayUpdate) -> None:
        self._put(update)

    def close(self) -> None:
        self._put(_STOP)

    def pending(self) -> int:
        return self._queue.qsize()

    async def get(self) -> DisplayUpdate | None:
        item = await self._queue.get()
        if item is _STOP:
            return None
        return item

    def _put(self, item: object) -> None:
        loop = self._loop
        if loop is None or _running_loop() is loop:
            self._queue.put_nowait(item)
        else:
            loop.call_soon_threadsafe(self._queue.put_nowait, item)


class UpdateDispatcher:
    """Drains an UpdateQueue into a sink. The only caller of ``sink.render``.

    An optional spinner is started and stopped as ``BusyChanged`` updates pass.
    """

    def __init__(self, updates: UpdateQueue, sink: DisplaySink, *, spinner: Spinner | None = None):
        self._updates = updates
        self._sink = sink
        self._spinner = spinner
        self._task: asyncio.Task | None = None
        self._rendered = 0

    @property
    def rendered_count(self) -> int:
        return self._rendered

    def start(self) -> asyncio.Task:
        if self._task is None:
            self._updates.bind(asyncio.get_running_loop())
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is not None:
            self._updates.close()
            await self._task
            self._task = None
        if self._spinner is not None:
            self._spinner.stop()

    async def run(self) -> None:
        self._updates.bind(asyncio.get_running_loop())
        while True:
            update = await self._updates.get()
            if update is None:
                break
            if self._spinner is not None and isinstance(update, BusyChanged):
                if update.busy:
                    self._spinner.start()
                else:
                    self._spinner.stop()
            try:
                self._sink.render(update)
            except Exception:
                logger.exception(f"Display sink failed to render {type(update).__name__}")
            self._rendered += 1
