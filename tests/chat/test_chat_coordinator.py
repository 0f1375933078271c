import asyncio
import unittest

from chatgpt_desk.chat.coordinator import ChatStreamCoordinator, StreamSession
from chatgpt_desk.display import (
    AssistantStreamEnded,
    AssistantTextUpdated,
    MessageAppended,
    StatusChanged,
    UpdateDispatcher,
    UpdateQueue,
)
from chatgpt_desk.store import MessageStore, MessageStoreError, Role


class _RecordingSink:
    def __init__(self):
        self.updates: list[object] = []

    def render(self, update) -> None:
        self.updates.append(update)

    def of_type(self, cls) -> list:
        return [u for u in self.updates if isinstance(u, cls)]


class _FakeChatProvider:
    def __init__(self, deltas: list[str], *, error: Exception | None = None, gate: asyncio.Event | None = None):
        self._deltas = deltas
        self._error = error
        self._gate = gate
        self.calls: list[dict] = []
        self.on_call = None

    async def stream_text(self, model: str, temperature: float, messages: list[dict]):
        self.calls.append({"model": model, "temperature": temperature, "messages": messages})
        if self.on_call is not None:
            self.on_call()
        if self._gate is not None:
            await self._gate.wait()
        for delta in self._deltas:
            await asyncio.sleep(0)
            yield delta
        if self._error is not None:
            raise self._error


class _FailingStore:
    """Wraps a real store and fails appends for the given roles."""

    def __init__(self, fail_roles: set[Role]):
        self.inner = MessageStore(":memory:")
        self._fail_roles = fail_roles

    def append(self, role, content):
        if Role(role) in self._fail_roles:
            raise MessageStoreError("disk full")
        return self.inner.append(role, content)


class ChatStreamCoordinatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MessageStore(":memory:")
        self.sink = _RecordingSink()

    def tearDown(self) -> None:
        self.store.close()

    def _run(self, provider, actions, *, store=None) -> ChatStreamCoordinator:
        """Run ``actions(coordinator)`` with a live dispatcher, then drain everything."""
        coordinator_box: list[ChatStreamCoordinator] = []

        async def scenario() -> None:
            updates = UpdateQueue()
            dispatcher = UpdateDispatcher(updates, self.sink)
            dispatcher.start()
            coordinator = ChatStreamCoordinator(
                store or self.store,
                provider,
                updates,
                model="gpt-4",
                temperature=0.7,
            )
            coordinator_box.append(coordinator)
            await actions(coordinator)
            await coordinator.wait()
            await dispatcher.stop()

        asyncio.run(scenario())
        return coordinator_box[0]

    def test_hello_scenario_persists_user_then_assistant(self) -> None:
        provider = _FakeChatProvider(["Hi", " there"])

        async def actions(coordinator):
            self.assertIsNotNone(coordinator.send("Hello"))

        self._run(provider, actions)

        messages = self.store.list_all()
        self.assertEqual(
            [(Role.USER, "Hello"), (Role.ASSISTANT, "Hi there")],
            [(m.role, m.content) for m in messages],
        )

    def test_user_message_is_persisted_before_the_request_starts(self) -> None:
        provider = _FakeChatProvider(["ok"])
        seen_counts: list[int] = []
        provider.on_call = lambda: seen_counts.append(self.store.count())

        async def actions(coordinator):
            coordinator.send("Hello")
            # persisted synchronously, before the task has had a chance to run
            self.assertEqual(1, self.store.count())
            self.assertEqual([], provider.calls)

        self._run(provider, actions)

        self.assertEqual([1], seen_counts)

    def test_published_text_is_cumulative_and_in_arrival_order(self) -> None:
        provider = _FakeChatProvider(["The", " quick", " brown", " fox"])

        async def actions(coordinator):
            coordinator.send("Tell me something")

        self._run(provider, actions)

        self.assertEqual(MessageAppended("user", "Tell me something"), self.sink.updates[0])
        texts = [u.text for u in self.sink.of_type(AssistantTextUpdated)]
        self.assertEqual(["The", "The quick", "The quick brown", "The quick brown fox"], texts)
        ended = self.sink.of_type(AssistantStreamEnded)
        self.assertEqual(1, len(ended))
        self.assertTrue(ended[0].completed)
        self.assertIs(ended[0], self.sink.updates[-1])
        self.assertEqual("The quick brown fox", self.store.list_all()[-1].content)

    def test_empty_input_is_ignored(self) -> None:
        provider = _FakeChatProvider(["never"])

        async def actions(coordinator):
            self.assertIsNone(coordinator.send(""))
            self.assertIsNone(coordinator.send("   \n"))

        self._run(provider, actions)

        self.assertEqual(0, self.store.count())
        self.assertEqual([], provider.calls)
        self.assertEqual([], self.sink.updates)

    def test_stream_error_persists_no_assistant_message(self) -> None:
        provider = _FakeChatProvider(["partial"], error=RuntimeError("connection reset"))

        async def actions(coordinator):
            coordinator.send("Hello")

        self._run(provider, actions)

        self.assertEqual([Role.USER], [m.role for m in self.store.list_all()])
        self.assertIn(StatusChanged("API Error: connection reset"), self.sink.updates)
        ended = self.sink.of_type(AssistantStreamEnded)
        self.assertFalse(ended[0].completed)

    def test_request_carries_only_the_submitted_message(self) -> None:
        provider = _FakeChatProvider(["a"])

        async def actions(coordinator):
            coordinator.send("first")
            await coordinator.wait()
            coordinator.send("second", model_id="gpt-3.5-turbo", temperature=1.3)

        self._run(provider, actions)

        self.assertEqual(2, len(provider.calls))
        self.assertEqual([{"role": "user", "content": "first"}], provider.calls[0]["messages"])
        self.assertEqual("gpt-4", provider.calls[0]["model"])
        self.assertEqual(0.7, provider.calls[0]["temperature"])
        self.assertEqual([{"role": "user", "content": "second"}], provider.calls[1]["messages"])
        self.assertEqual("gpt-3.5-turbo", provider.calls[1]["model"])
        self.assertEqual(1.3, provider.calls[1]["temperature"])

    def test_overlapping_send_is_rejected(self) -> None:
        gate = asyncio.Event()
        provider = _FakeChatProvider(["done"], gate=gate)

        async def actions(coordinator):
            first = coordinator.send("one")
            await asyncio.sleep(0)
            self.assertTrue(coordinator.is_streaming)
            self.assertIsNone(coordinator.send("two"))
            gate.set()
            await first

        self._run(provider, actions)

        self.assertEqual(["one", "done"], [m.content for m in self.store.list_all()])
        self.assertIn(StatusChanged(ChatStreamCoordinator.BUSY_STATUS), self.sink.updates)
        self.assertEqual(1, len(provider.calls))

    def test_cancel_stops_the_stream_without_persisting(self) -> None:
        gate = asyncio.Event()
        provider = _FakeChatProvider(["never shown"], gate=gate)

        async def actions(coordinator):
            coordinator.send("Hello")
            await asyncio.sleep(0)
            self.assertTrue(coordinator.cancel())
            await coordinator.wait()
            self.assertFalse(coordinator.is_streaming)
            self.assertFalse(coordinator.cancel())

        self._run(provider, actions)

        self.assertEqual([Role.USER], [m.role for m in self.store.list_all()])
        self.assertIn(StatusChanged("Response cancelled"), self.sink.updates)
        self.assertEqual([], self.sink.of_type(AssistantTextUpdated))

    def test_user_message_store_failure_is_reported_and_exchange_continues(self) -> None:
        store = _FailingStore({Role.USER})
        provider = _FakeChatProvider(["Hi"])

        async def actions(coordinator):
            coordinator.send("Hello")

        self._run(provider, actions, store=store)

        self.assertIn(StatusChanged("Error saving message: disk full"), self.sink.updates)
        self.assertEqual(MessageAppended("user", "Hello"), self.sink.updates[0])
        self.assertEqual([(Role.ASSISTANT, "Hi")], [(m.role, m.content) for m in store.inner.list_all()])
        store.inner.close()

    def test_reply_store_failure_keeps_displayed_text(self) -> None:
        store = _FailingStore({Role.ASSISTANT})
        provider = _FakeChatProvider(["Hi", "!"])

        async def actions(coordinator):
            coordinator.send("Hello")

        self._run(provider, actions, store=store)

        self.assertEqual("Hi!", self.sink.of_type(AssistantTextUpdated)[-1].text)
        self.assertEqual(StatusChanged("Error saving response: disk full"), self.sink.updates[-1])
        self.assertEqual([Role.USER], [m.role for m in store.inner.list_all()])
        store.inner.close()

    def test_model_and_temperature_selection(self) -> None:
        coordinator = ChatStreamCoordinator(
            self.store, _FakeChatProvider([]), UpdateQueue(), model="gpt-4", temperature=0.7
        )

        coordinator.select_model("gpt-3.5-turbo")
        coordinator.set_temperature(2.0)

        self.assertEqual("gpt-3.5-turbo", coordinator.model)
        self.assertEqual(2.0, coordinator.temperature)
        with self.assertRaises(ValueError):
            coordinator.set_temperature(2.1)
        with self.assertRaises(ValueError):
            coordinator.select_model("  ")


class StreamSessionTests(unittest.TestCase):
    def test_append_accumulates(self) -> None:
        session = StreamSession(stream_id=1)
        session.append("a")
        self.assertEqual("ab", session.append("b"))


if __name__ == "__main__":
    unittest.main()
