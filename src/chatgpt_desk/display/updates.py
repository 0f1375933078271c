from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Union, runtime_checkable

from chatgpt_desk.images.handle import ImageHandle


@dataclass(frozen=True)
class MessageAppended:
    role: str
    content: str


@dataclass(frozen=True)
class AssistantTextUpdated:
    """Full text accumulated so far for one streamed reply."""

    stream_id: int
    text: str


@dataclass(frozen=True)
class AssistantStreamEnded:
    stream_id: int
    completed: bool


@dataclass(frozen=True)
class StatusChanged:
    text: str


@dataclass(frozen=True)
class BusyChanged:
    busy: bool


@dataclass(frozen=True)
class SpinnerFrame:
    """One animation frame of the busy indicator."""

    text: str


@dataclass(frozen=True)
class PromptShown:
    """The shell is waiting for a line of input."""

    text: str


@dataclass(frozen=True)
class PromptCleared:
    pass


@dataclass(frozen=True)
class ImageDisplayed:
    handle: ImageHandle
    cache_path: Path


DisplayUpdate = Union[
    MessageAppended,
    AssistantTextUpdated,
    AssistantStreamEnded,
    StatusChanged,
    BusyChanged,
    SpinnerFrame,
    PromptShown,
    PromptCleared,
    ImageDisplayed,
]


@runtime_checkable
class DisplaySink(Protocol):
    def render(self, update: DisplayUpdate) -> None: ...
