import asyncio
import unittest
from types import SimpleNamespace

from chatgpt_desk.providers.anthropic_provider import AnthropicProvider


class _FakeEventStream:
    def __init__(self, events: list[object]):
        self._events = events

    def __aiter__(self):
        self._iter = iter(self._events)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class _FakeMessages:
    def __init__(self, events: list[object]):
        self._events = events
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        return _FakeEventStream(self._events)


class AnthropicProviderStreamTests(unittest.TestCase):
    def test_stream_text_yields_text_deltas_only(self) -> None:
        events = [
            SimpleNamespace(type="message_start"),
            SimpleNamespace(type="content_block_delta", delta=SimpleNamespace(type="text_delta", text="Hi")),
            SimpleNamespace(type="content_block_delta", delta=SimpleNamespace(type="input_json_delta")),
            SimpleNamespace(type="content_block_delta", delta=SimpleNamespace(type="text_delta", text=" there")),
            SimpleNamespace(type="message_delta", delta=SimpleNamespace(stop_reason="end_turn")),
            SimpleNamespace(type="message_stop"),
        ]
        messages = _FakeMessages(events)
        provider = AnthropicProvider("key", max_tokens=256, client=SimpleNamespace(messages=messages))

        async def collect() -> list[str]:
            return [d async for d in provider.stream_text("claude-x", 0.5, [{"role": "user", "content": "Hello"}])]

        self.assertEqual(["Hi", " there"], asyncio.run(collect()))
        call = messages.calls[0]
        self.assertEqual("claude-x", call["model"])
        self.assertEqual(256, call["max_tokens"])
        self.assertEqual(0.5, call["temperature"])
        self.assertTrue(call["stream"])

    def test_temperature_is_capped(self) -> None:
        messages = _FakeMessages([])
        provider = AnthropicProvider("key", client=SimpleNamespace(messages=messages))

        async def drain() -> None:
            async for _ in provider.stream_text("claude-x", 1.8, []):
                pass

        asyncio.run(drain())

        self.assertEqual(1.0, messages.calls[0]["temperature"])


if __name__ == "__main__":
    unittest.main()
