"""Unified LLM client wrapping both the OpenAI and Anthropic SDKs."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from npcsync.core.config import LLMConfig

logger = logging.getLogger(__name__)

DEEPSEEK_BASE_URL = "https://api.deepseek.com"


@dataclass
class LLMResponse:
    """Response from an LLM completion call."""

    content: str
    model: str
    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class LLMClient:
    """LLM client that dispatches to the OpenAI or Anthropic SDK.

    Supports four providers:
    - "deepseek": openai SDK pointed at the DeepSeek API
    - "openai": openai SDK with OpenAI's default base URL
    - "openai-compatible": openai SDK with a custom base_url
      (for Ollama, vLLM, etc.)
    - "anthropic": anthropic SDK

    Includes retry logic: 1 retry on transient errors (rate limit, timeout, connection).
    """

    retry_delay: float = 5.0

    def __init__(self, config: LLMConfig) -> None:
        self.config = config
        self._client = self._create_client()

    def _create_client(self):
        """Create the underlying SDK client based on provider."""
        api_key = self.config.resolve_api_key()

        if self.config.provider == "anthropic":
            import anthropic

            kwargs = {}
            if api_key:
                kwargs["api_key"] = api_key
            if self.config.base_url:
                kwargs["base_url"] = self.config.base_url
            return anthropic.Anthropic(**kwargs)

        elif self.config.provider in ("deepseek", "openai", "openai-compatible"):
            import openai

            kwargs = {}
            if api_key:
                kwargs["api_key"] = api_key
            if self.config.base_url:
                kwargs["base_url"] = self.config.base_url
            elif self.config.provider == "deepseek":
                kwargs["base_url"] = DEEPSEEK_BASE_URL
            elif self.config.provider == "openai-compatible":
                raise ValueError(
                    "openai-compatible provider requires base_url to be set"
                )
            return openai.OpenAI(**kwargs)

        else:
            raise ValueError(
                f"Unknown LLM provider: {self.config.provider!r}. "
                f"Supported: 'deepseek', 'openai', 'openai-compatible', 'anthropic'"
            )

    def complete(
        self,
        prompt: str,
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
        desc: str = "request",
    ) -> LLMResponse:
        """Send a single-message completion request with retry on transient errors.

        Args:
            prompt: User prompt to complete.
            max_tokens: Override max_tokens from config.
            temperature: Override temperature from config.
            desc: Human-readable description for error messages.

        Returns:
            LLMResponse with content and token usage.

        Raises:
            RuntimeError: when the provider rejects the request or keeps
                failing after the retry.
        """
        request = {
            "model": self.config.model,
            "max_tokens": max_tokens if max_tokens is not None else self.config.max_tokens,
            "temperature": temperature if temperature is not None else self.config.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        logger.debug("LLM request: provider=%s model=%s desc=%s", self.config.provider, self.config.model, desc)

        if self.config.provider == "anthropic":
            import anthropic

            return self._with_retry(
                lambda: self._parse_anthropic(self._client.messages.create(**request)),
                transient=(anthropic.RateLimitError, anthropic.APIConnectionError, anthropic.APITimeoutError),
                fatal=anthropic.APIError,
                desc=desc,
            )

        import openai

        return self._with_retry(
            lambda: self._parse_openai(self._client.chat.completions.create(**request), desc),
            transient=(openai.RateLimitError, openai.APIConnectionError, openai.APITimeoutError),
            fatal=openai.APIError,
            desc=desc,
        )

    def _with_retry(
        self,
        call: Callable[[], LLMResponse],
        transient: tuple[type[Exception], ...],
        fatal: type[Exception],
        desc: str,
    ) -> LLMResponse:
        """Run ``call``, trying once more after a transient provider error."""
        for attempt in (1, 2):
            try:
                return call()
            except transient as exc:
                if attempt == 2:
                    raise RuntimeError(f"Failed to process {desc} after 2 attempts: {exc}") from exc
                logger.warning("Transient error for %s, retrying in %.0fs: %s", desc, self.retry_delay, exc)
                time.sleep(self.retry_delay)
            except fatal as exc:
                raise RuntimeError(f"LLM API error processing {desc}: {exc}") from exc

        raise RuntimeError(f"Failed to process {desc}")

    def _parse_anthropic(self, response) -> LLMResponse:
        return LLMResponse(
            content="".join(getattr(block, "text", "") for block in response.content),
            model=getattr(response, "model", None) or self.config.model,
            input_tokens=getattr(response.usage, "input_tokens", 0),
            output_tokens=getattr(response.usage, "output_tokens", 0),
        )

    def _parse_openai(self, response, desc: str) -> LLMResponse:
        if not response.choices:
            raise RuntimeError(f"Invalid API response for {desc}: no choices returned")
        usage = response.usage
        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model or self.config.model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )
