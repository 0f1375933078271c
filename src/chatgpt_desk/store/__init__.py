from chatgpt_desk.store.message_store import MessageStore, MessageStoreError
from chatgpt_desk.store.models import Message, Role

__all__ = [
    "Message",
    "MessageStore",
    "MessageStoreError",
    "Role",
]
