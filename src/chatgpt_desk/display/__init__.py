from chatgpt_desk.display.console import ConsoleSink
from chatgpt_desk.display.dispatcher import UpdateDispatcher, UpdateQueue
from chatgpt_desk.display.spinner import Spinner
from chatgpt_desk.display.updates import (
    AssistantStreamEnded,
    AssistantTextUpdated,
    BusyChanged,
    DisplaySink,
    DisplayUpdate,
    ImageDisplayed,
    MessageAppended,
    PromptCleared,
    PromptShown,
    SpinnerFrame,
    StatusChanged,
)

__all__ = [
    "AssistantStreamEnded",
    "AssistantTextUpdated",
    "BusyChanged",
    "ConsoleSink",
    "DisplaySink",
    "DisplayUpdate",
    "ImageDisplayed",
    "MessageAppended",
    "PromptCleared",
    "PromptShown",
    "Spinner",
    "SpinnerFrame",
    "StatusChanged",
    "UpdateDispatcher",
    "UpdateQueue",
]
