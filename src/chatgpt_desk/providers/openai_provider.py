from collections.abc import AsyncIterator

import openai
from loguru import logger

from chatgpt_desk.providers.common import open_with_retry

_TRANSIENT_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.APITimeoutError,
)


class OpenAIProvider:
    """Chat completions and image generation against the OpenAI API."""

    def __init__(
        self,
        api_key: str,
        *,
        timeout_seconds: float = 600.0,
        max_attempts: int = 1,
        client: openai.AsyncOpenAI | None = None,
    ):
        # Retries are handled by open_with_retry so the SDK's own are turned off.
        self._client = client or openai.AsyncOpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)
        self._max_attempts = max_attempts

    async def stream_text(
        self,
        model: str,
        temperature: float,
        messages: list[dict],
    ) -> AsyncIterator[str]:
        logger.debug(f"Chat request: model={model}, temperature={temperature}, messages={len(messages)}")
        stream = await open_with_retry(
            lambda: self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                messages=messages,
                stream=True,
            ),
            _TRANSIENT_ERRORS,
            self._max_attempts,
        )

        finish_reason: str | None = None
        async for chunk in stream:
            choice = chunk.choices[0] if chunk.choices else None
            if choice is None:
                continue
            if choice.finish_reason:
                finish_reason = choice.finish_reason
            delta = choice.delta
            if delta is None or not delta.content:
                continue
            yield delta.content

        logger.debug(f"Chat response finished: finish_reason={finish_reason}")

    async def generate_b64(self, prompt: str, model: str, size: str) -> str | None:
        logger.debug(f"Image request: model={model}, size={size}, prompt_len={len(prompt)}")
        response = await open_with_retry(
            lambda: self._client.images.generate(
                model=model,
                prompt=prompt,
                n=1,
                size=size,
                response_format="b64_json",
            ),
            _TRANSIENT_ERRORS,
            self._max_attempts,
        )
        if not response.data:
            return None
        return response.data[0].b64_json
