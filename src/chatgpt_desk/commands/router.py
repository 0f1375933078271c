from __future__ import annotations

from collections.abc import Awaitable, Callable


def command_argument(command: str) -> str:
    """Text after the command word, e.g. ``"/image a red fox"`` -> ``"a red fox"``."""
    _, _, rest = command.strip().partition(" ")
    return rest.strip()


class CommandRouter:
    def __init__(
        self,
        *,
        on_help: Callable[[], Awaitable[None]],
        on_image: Callable[[str], Awaitable[None]],
        on_save: Callable[[str], Awaitable[None]],
        on_model: Callable[[str], Awaitable[None]],
        on_temperature: Callable[[str], Awaitable[None]],
        on_cancel: Callable[[], Awaitable[None]],
        on_history: Callable[[], Awaitable[None]],
        on_unknown: Callable[[str], None],
    ) -> None:
        self._on_help = on_help
        self._on_image = on_image
        self._on_save = on_save
        self._on_model = on_model
        self._on_temperature = on_temperature
        self._on_cancel = on_cancel
        self._on_history = on_history
        self._on_unknown = on_unknown

    async def try_handle(self, user_message: str) -> bool:
        trimmed = user_message.strip()
        if not trimmed.startswith("/"):
            return False

        word = trimmed.split(maxsplit=1)[0]
        if word == "/help":
            await self._on_help()
            return True
        if word == "/image":
            await self._on_image(command_argument(trimmed))
            return True
        if word == "/save":
            await self._on_save(command_argument(trimmed))
            return True
        if word == "/model":
            await self._on_model(command_argument(trimmed))
            return True
        if word == "/temperature":
            await self._on_temperature(command_argument(trimmed))
            return True
        if word == "/cancel":
            await self._on_cancel()
            return True
        if word == "/history":
            await self._on_history()
            return True

        self._on_unknown(trimmed)
        return True
