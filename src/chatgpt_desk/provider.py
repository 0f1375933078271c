from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable


@runtime_checkable
class ChatProvider(Protocol):
    def stream_text(
        self,
        model: str,
        temperature: float,
        messages: list[dict],
    ) -> AsyncIterator[str]:
        """Stream a chat completion, yielding text deltas in arrival order.

        Errors from the service propagate out of the iterator.
        """
        ...


@runtime_checkable
class ImageProvider(Protocol):
    async def generate_b64(self, prompt: str, model: str, size: str) -> str | None:
        """Single-shot image generation. Returns the base64 payload, or None if the response had none."""
        ...


def create_chat_provider(
    provider_name: str,
    api_key: str,
    *,
    timeout_seconds: float = 600.0,
    max_attempts: int = 1,
    max_tokens: int = 4096,
) -> ChatProvider:
    """Factory: create a ChatProvider by name."""
    name = provider_name.strip().lower()
    if name == "openai":
        from chatgpt_desk.providers.openai_provider import OpenAIProvider
        return OpenAIProvider(api_key, timeout_seconds=timeout_seconds, max_attempts=max_attempts)
    if name == "anthropic":
        from chatgpt_desk.providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(
            api_key,
            timeout_seconds=timeout_seconds,
            max_attempts=max_attempts,
            max_tokens=max_tokens,
        )
    raise ValueError(f"Unknown provider: {provider_name!r}. Supported: 'openai', 'anthropic'")
