from __future__ import annotations

import asyncio
from pathlib import Path

from loguru import logger

from chatgpt_desk.display.dispatcher import UpdateQueue
from chatgpt_desk.display.updates import BusyChanged, ImageDisplayed, StatusChanged
from chatgpt_desk.images.cache import ImageCache
from chatgpt_desk.images.handle import ImageDecodeError, ImageHandle, decode_b64_image
from chatgpt_desk.provider import ImageProvider


class ImageRequestCoordinator:
    """Generates one image at a time and keeps the latest one in the cache file.

    Generation and saving share one task slot: while either is running the
    other is refused, so the cache file is never written and copied at once.
    """

    BUSY_STATUS = "Image operation already in progress"

    def __init__(
        self,
        provider: ImageProvider,
        cache: ImageCache,
        updates: UpdateQueue,
        *,
        model: str = "dall-e-3",
        size: str = "1024x1024",
    ):
        self._provider = provider
        self._cache = cache
        self._updates = updates
        self._model = model
        self._size = size
        self._current: ImageHandle | None = None
        self._task: asyncio.Task | None = None

    @property
    def current_image(self) -> ImageHandle | None:
        return self._current

    @property
    def is_busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def generate(self, prompt: str) -> asyncio.Task | None:
        if not prompt or not prompt.strip():
            return None
        if self.is_busy:
            self._updates.post(StatusChanged(self.BUSY_STATUS))
            return None
        return self._start(self._generate(prompt), "image-generate")

    def save(self, destination: str | Path) -> asyncio.Task | None:
        if not str(destination).strip():
            return None
        if self.is_busy:
            self._updates.post(StatusChanged(self.BUSY_STATUS))
            return None
        if not self._cache.exists():
            self._updates.post(StatusChanged("No image to save"))
            return None
        return self._start(self._save(Path(destination)), "image-save")

    def cancel(self) -> bool:
        if not self.is_busy:
            return False
        self._task.cancel()
        return True

    async def wait(self) -> None:
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _start(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        task.add_done_callback(self._on_task_done)
        self._task = task
        return task

    async def _generate(self, prompt: str) -> None:
        self._updates.post(BusyChanged(True))
        try:
            await self._run_generation(prompt)
        except asyncio.CancelledError:
            logger.info("Image generation cancelled")
            self._updates.post(StatusChanged("Image generation cancelled"))
            raise
        finally:
            self._updates.post(BusyChanged(False))

    async def _run_generation(self, prompt: str) -> None:
        logger.info(f"Image generation started: model={self._model}, size={self._size}")
        try:
            payload = await self._provider.generate_b64(prompt, self._model, self._size)
        except Exception as ex:
            logger.warning(f"Image generation failed: {ex}")
            self._updates.post(StatusChanged(f"Image Generation Error: {ex}"))
            return

        try:
            handle = await asyncio.to_thread(self._decode_and_cache, payload)
        except ImageDecodeError as ex:
            logger.warning(f"Image decode failed: {ex}")
            self._updates.post(StatusChanged(f"Image Decode Error: {ex}"))
            return
        except OSError as ex:
            logger.error(f"Image cache write failed: {ex}")
            self._updates.post(StatusChanged(f"File Error: {ex}"))
            return

        self._current = handle
        logger.info(f"Image generated: {handle.width}x{handle.height} {handle.format}, {len(handle.data)} bytes")
        self._updates.post(ImageDisplayed(handle, self._cache.path))
        self._updates.post(StatusChanged("Image generated successfully"))

    def _decode_and_cache(self, payload: str | None) -> ImageHandle:
        # Runs on a worker thread. The handle is built before touching the cache
        # so a bad payload leaves it as it was.
        handle = ImageHandle.from_bytes(decode_b64_image(payload))
        self._cache.write(handle.data)
        return handle

    async def _save(self, destination: Path) -> None:
        try:
            saved = await asyncio.to_thread(self._cache.save_to, destination)
        except OSError as ex:
            logger.error(f"Image save failed: {ex}")
            self._updates.post(StatusChanged(f"Error saving image: {ex}"))
            return
        self._updates.post(StatusChanged(f"Image saved to: {saved}"))

    def _on_task_done(self, task: asyncio.Task) -> None:
        if self._task is task:
            self._task = None
