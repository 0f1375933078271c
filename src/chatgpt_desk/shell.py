from __future__ import annotations

import asyncio
from collections.abc import Callable

from loguru import logger

from chatgpt_desk.bootstrap import AppRuntime, replay_history
from chatgpt_desk.commands.router import CommandRouter
from chatgpt_desk.display import PromptCleared, PromptShown, StatusChanged

_HELP_LINES = [
    "Commands:",
    "  /image <prompt>       generate an image",
    "  /save <path>          save the last generated image as PNG",
    "  /model [id]           show or select the chat model",
    "  /temperature [value]  show or set the sampling temperature (0.0-2.0)",
    "  /cancel               stop the running response or image request",
    "  /history              show the stored conversation again",
    "  exit | quit           leave",
]


class ConsoleShell:
    """Line-oriented front end.

    Input is read on a worker thread so rendering never waits on the keyboard.
    The prompt itself is drawn by the display sink, in order with everything
    else it prints.
    """

    _USER_PROMPT = "you> "

    def __init__(self, runtime: AppRuntime, *, read_line: Callable[[str], str] = input):
        self._runtime = runtime
        self._read_line = read_line
        self._router = CommandRouter(
            on_help=self._on_help,
            on_image=self._on_image,
            on_save=self._on_save,
            on_model=self._on_model,
            on_temperature=self._on_temperature,
            on_cancel=self._on_cancel,
            on_history=self._on_history,
            on_unknown=self._on_unknown,
        )

    async def run(self) -> None:
        while True:
            self._runtime.updates.post(PromptShown(self._USER_PROMPT))
            try:
                line = await asyncio.to_thread(self._read_line, "")
            except (EOFError, KeyboardInterrupt):
                break
            finally:
                self._runtime.updates.post(PromptCleared())

            trimmed = line.strip()
            if trimmed in ("exit", "quit"):
                break
            if not trimmed:
                continue

            await self.handle_line(trimmed)

    async def handle_line(self, line: str) -> None:
        try:
            if await self._router.try_handle(line):
                return
            self._runtime.chat.send(line)
        except Exception as ex:
            logger.error(f"Unhandled error: {ex}")
            self._status(f"Error: {ex}")

    def _status(self, text: str) -> None:
        self._runtime.updates.post(StatusChanged(text))

    async def _on_help(self) -> None:
        for line in _HELP_LINES:
            self._status(line)

    async def _on_image(self, prompt: str) -> None:
        if not prompt:
            self._status("Usage: /image <prompt>")
            return
        self._runtime.images.generate(prompt)

    async def _on_save(self, path: str) -> None:
        if not path:
            self._status("Usage: /save <path>")
            return
        self._runtime.images.save(path)

    async def _on_model(self, model_id: str) -> None:
        chat = self._runtime.chat
        models = self._runtime.config.models
        if not model_id:
            self._status(f"Model: {chat.model} (available: {', '.join(models)})")
            return
        if model_id not in models:
            self._status(f"Unknown model: {model_id}. Available: {', '.join(models)}")
            return
        chat.select_model(model_id)
        self._status(f"Model set to {model_id}")

    async def _on_temperature(self, value: str) -> None:
        chat = self._runtime.chat
        if not value:
            self._status(f"Temperature: {chat.temperature:.1f}")
            return
        try:
            chat.set_temperature(float(value))
        except ValueError as ex:
            self._status(f"Invalid temperature {value!r}: {ex}")
            return
        self._status(f"Temperature set to {chat.temperature:.1f}")

    async def _on_cancel(self) -> None:
        cancelled_chat = self._runtime.chat.cancel()
        cancelled_image = self._runtime.images.cancel()
        if not (cancelled_chat or cancelled_image):
            self._status("Nothing to cancel")

    async def _on_history(self) -> None:
        replay_history(self._runtime.store, self._runtime.updates)

    def _on_unknown(self, command: str) -> None:
        self._status(f"Unknown command: {command}. Type /help for commands.")
