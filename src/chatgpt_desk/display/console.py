from __future__ import annotations

import sys
from typing import TextIO

from chatgpt_desk.display.updates import (
    AssistantStreamEnded,
    AssistantTextUpdated,
    BusyChanged,
    DisplayUpdate,
    ImageDisplayed,
    MessageAppended,
    PromptCleared,
    PromptShown,
    SpinnerFrame,
    StatusChanged,
)


class ConsoleSink:
    """Renders display updates as lines on a text stream.

    The last line of the terminal is a footer holding the busy frame and the
    input prompt. It is erased before anything else is written and drawn again
    afterwards, except while a streamed reply is mid-line.
    """

    def __init__(self, out: TextIO | None = None):
        self._out = out or sys.stdout
        # stream_id -> number of characters of the accumulated text already written
        self._shown: dict[int, int] = {}
        self._line_open = False
        self._busy = False
        self._frame = ""
        self._prompt: str | None = None
        self._footer_width = 0
        self.status = ""
        self.current_image: ImageDisplayed | None = None

    def render(self, update: DisplayUpdate) -> None:
        if isinstance(update, AssistantTextUpdated):
            self._render_stream_text(update)
            return

        if isinstance(update, MessageAppended):
            self._write_line(f"{update.role}: {update.content}")
        elif isinstance(update, AssistantStreamEnded):
            if self._shown.pop(update.stream_id, None) is not None and self._line_open:
                self._raw("\n")
                self._line_open = False
        elif isinstance(update, StatusChanged):
            self.status = update.text
            self._write_line(f"-- {update.text}")
        elif isinstance(update, BusyChanged):
            self._busy = update.busy
            self._frame = ""
        elif isinstance(update, SpinnerFrame):
            if not self._busy:
                return
            self._frame = update.text
        elif isinstance(update, PromptShown):
            self._prompt = update.text
        elif isinstance(update, PromptCleared):
            # The user's Enter already moved the cursor off the footer line.
            self._prompt = None
            self._footer_width = 0
        elif isinstance(update, ImageDisplayed):
            self.current_image = update
            handle = update.handle
            self._write_line(
                f"image: {handle.width}x{handle.height} {handle.format}, "
                f"{len(handle.data):,} bytes (cached at {update.cache_path})"
            )
        self._draw_footer()

    def close(self) -> None:
        self._busy = False
        self._prompt = None
        self._clear_footer()

    def _render_stream_text(self, update: AssistantTextUpdated) -> None:
        shown = self._shown.get(update.stream_id, 0)
        suffix = update.text[shown:]
        if not suffix and update.stream_id in self._shown:
            return
        if not self._line_open:
            self._clear_footer()
            self._raw("assistant: ")
            self._line_open = True
        self._raw(suffix)
        self._shown[update.stream_id] = max(shown, len(update.text))

    def _write_line(self, text: str) -> None:
        self._clear_footer()
        if self._line_open:
            # a reply is mid-line; it continues on a fresh "assistant:" line
            self._raw("\n")
            self._line_open = False
        self._raw(text + "\n")

    def _footer_text(self) -> str:
        parts = []
        if self._busy and self._frame:
            parts.append(self._frame + "  ")
        if self._prompt:
            parts.append(self._prompt)
        return "".join(parts)

    def _draw_footer(self) -> None:
        if self._line_open:
            return
        text = self._footer_text()
        self._clear_footer()
        if text:
            self._raw("\r" + text)
            self._footer_width = len(text)

    def _clear_footer(self) -> None:
        if self._footer_width:
            self._raw("\r" + " " * self._footer_width + "\r")
            self._footer_width = 0

    def _raw(self, text: str) -> None:
        self._out.write(text)
        self._out.flush()
