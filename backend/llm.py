from __future__ import annotations

import logging

from openai import AsyncOpenAI

from config import LLMSettings
from errors import InferenceError

logger = logging.getLogger(__name__)


class InferenceClient:
    """One operation: complete a structured chat turn against an OpenAI-compatible endpoint.

    Works with OpenAI itself and with local servers exposing the same API
    (Ollama's ``/v1``, vLLM, LM Studio). Calls are time-bounded and never retried;
    the caller decides what to fall back to.
    """

    def __init__(self, settings: LLMSettings, client: AsyncOpenAI | None = None) -> None:
        self.settings = settings
        self._client = client

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    def _get_client(self) -> AsyncOpenAI:
        # Lazy so construction succeeds without a reachable endpoint.
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                timeout=self.settings.timeout,
                max_retries=0,
            )
        return self._client

    async def complete(self, system_prompt: str, user_content: str) -> str:
        if not self.enabled:
            raise InferenceError("AI inference is disabled")

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_content},
        ]
        try:
            completion = await self._get_client().chat.completions.create(
                model=self.settings.model,
                messages=messages,
                temperature=0,
            )
        except Exception as exc:
            raise InferenceError(f"LLM call failed: {exc}") from exc

        if not completion.choices:
            raise InferenceError("LLM returned no choices")
        content = completion.choices[0].message.content
        if not content or not content.strip():
            raise InferenceError("LLM returned empty content")

        logger.debug("LLM reply from %s: %d chars", self.settings.model, len(content))
        return content.strip()
