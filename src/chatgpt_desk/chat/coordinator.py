from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass

from loguru import logger

from chatgpt_desk.app_config import MAX_TEMPERATURE, MIN_TEMPERATURE
from chatgpt_desk.display.dispatcher import UpdateQueue
from chatgpt_desk.display.updates import (
    AssistantStreamEnded,
    AssistantTextUpdated,
    MessageAppended,
    StatusChanged,
)
from chatgpt_desk.provider import ChatProvider
from chatgpt_desk.store import MessageStore, MessageStoreError, Role


@dataclass
class StreamSession:
    stream_id: int
    accumulated_text: str = ""

    def append(self, delta: str) -> str:
        self.accumulated_text += delta
        return self.accumulated_text


class ChatStreamCoordinator:
    """Drives one chat exchange at a time: persist the prompt, stream the reply, persist the reply.

    All display work goes through the update queue; the stream itself is
    consumed in a background task owned by this coordinator.
    """

    BUSY_STATUS = "A response is still streaming (use /cancel to stop it)"

    def __init__(
        self,
        store: MessageStore,
        provider: ChatProvider,
        updates: UpdateQueue,
        *,
        model: str,
        temperature: float,
    ):
        self._store = store
        self._provider = provider
        self._updates = updates
        self._model = model
        self._temperature = temperature
        self._stream_ids = itertools.count(1)
        self._task: asyncio.Task | None = None

    @property
    def model(self) -> str:
        return self._model

    @property
    def temperature(self) -> float:
        return self._temperature

    @property
    def is_streaming(self) -> bool:
        return self._task is not None and not self._task.done()

    def select_model(self, model_id: str) -> None:
        model_id = model_id.strip()
        if not model_id:
            raise ValueError("Model id must not be empty")
        self._model = model_id

    def set_temperature(self, value: float) -> None:
        if not MIN_TEMPERATURE <= value <= MAX_TEMPERATURE:
            raise ValueError(f"Temperature must be between {MIN_TEMPERATURE} and {MAX_TEMPERATURE}")
        self._temperature = value

    def send(
        self,
        user_text: str,
        model_id: str | None = None,
        temperature: float | None = None,
    ) -> asyncio.Task | None:
        if not user_text or not user_text.strip():
            return None

        if self.is_streaming:
            self._updates.post(StatusChanged(self.BUSY_STATUS))
            return None

        self._updates.post(MessageAppended(Role.USER.value, user_text))
        self._persist(Role.USER, user_text, "Error saving message")

        session = StreamSession(stream_id=next(self._stream_ids))
        task = asyncio.create_task(
            self._stream(
                session,
                user_text,
                model_id or self._model,
                self._temperature if temperature is None else temperature,
            ),
            name=f"chat-stream-{session.stream_id}",
        )
        task.add_done_callback(self._on_task_done)
        self._task = task
        return task

    def cancel(self) -> bool:
        if not self.is_streaming:
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

    async def _stream(self, session: StreamSession, user_text: str, model: str, temperature: float) -> None:
        # Each request carries only the message just submitted.
        messages = [{"role": Role.USER.value, "content": user_text}]
        logger.info(f"Chat stream {session.stream_id} started: model={model}, temperature={temperature}")

        try:
            async for delta in self._provider.stream_text(model, temperature, messages):
                if not delta:
                    continue
                session.append(delta)
                self._updates.post(AssistantTextUpdated(session.stream_id, session.accumulated_text))
        except asyncio.CancelledError:
            logger.info(f"Chat stream {session.stream_id} cancelled after {len(session.accumulated_text)} chars")
            self._updates.post(AssistantStreamEnded(session.stream_id, completed=False))
            self._updates.post(StatusChanged("Response cancelled"))
            raise
        except Exception as ex:
            logger.warning(f"Chat stream {session.stream_id} failed: {ex}")
            self._updates.post(AssistantStreamEnded(session.stream_id, completed=False))
            self._updates.post(StatusChanged(f"API Error: {ex}"))
            return

        logger.info(f"Chat stream {session.stream_id} completed: {len(session.accumulated_text)} chars")
        self._updates.post(AssistantStreamEnded(session.stream_id, completed=True))
        self._persist(Role.ASSISTANT, session.accumulated_text, "Error saving response")

    def _persist(self, role: Role, content: str, failure_label: str) -> bool:
        try:
            self._store.append(role, content)
        except MessageStoreError as ex:
            logger.error(f"{failure_label}: {ex}")
            self._updates.post(StatusChanged(f"{failure_label}: {ex}"))
            return False
        return True

    def _on_task_done(self, task: asyncio.Task) -> None:
        if self._task is task:
            self._task = None
