from collections.abc import AsyncIterator

import anthropic
from loguru import logger

from chatgpt_desk.providers.common import open_with_retry

_TRANSIENT_ERRORS = (
    anthropic.RateLimitError,
    anthropic.APIConnectionError,
    anthropic.APITimeoutError,
)


class AnthropicProvider:
    def __init__(
        self,
        api_key: str,
        *,
        timeout_seconds: float = 600.0,
        max_attempts: int = 1,
        max_tokens: int = 4096,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout_seconds, max_retries=0)
        self._max_attempts = max_attempts
        self._max_tokens = max_tokens

    async def stream_text(
        self,
        model: str,
        temperature: float,
        messages: list[dict],
    ) -> AsyncIterator[str]:
        logger.debug(
            f"Chat request: model={model}, temperature={temperature}, "
            f"max_tokens={self._max_tokens}, messages={len(messages)}"
        )
        # Anthropic caps temperature at 1.0.
        stream = await open_with_retry(
            lambda: self._client.messages.create(
                model=model,
                max_tokens=self._max_tokens,
                temperature=min(temperature, 1.0),
                messages=messages,
                stream=True,
            ),
            _TRANSIENT_ERRORS,
            self._max_attempts,
        )

        stop_reason: str | None = None
        async for event in stream:
            if event.type == "content_block_delta" and event.delta.type == "text_delta":
                yield event.delta.text
            elif event.type == "message_delta":
                stop_reason = event.delta.stop_reason

        logger.debug(f"Chat response finished: stop_reason={stop_reason}")
