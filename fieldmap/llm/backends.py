"""Text-generation backends for ai-transform.

The transformation core only needs ``(prompt, system_prompt,
output_format) -> text``. Two backends provide it:

- AnthropicTextGenerator: calls Claude directly through the anthropic SDK
- HttpTextGenerator: POSTs ``{prompt, systemPrompt, outputFormat}`` to a
  text-generation endpoint and reads ``{response}`` from the reply
"""

import logging
import time
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from fieldmap import config
from fieldmap.llm.client import call_text_model

logger = logging.getLogger(__name__)


@runtime_checkable
class TextGenerator(Protocol):
    """Protocol for text-generation collaborators."""

    def generate(
        self,
        prompt: str,
        system_prompt: str,
        output_format: str = "text",
    ) -> str: ...


class AnthropicTextGenerator:
    """Claude backend with a fallback model."""

    def __init__(
        self,
        model: str = config.AI_MODEL,
        fallback_model: str = config.AI_MODEL_FALLBACK,
        max_tokens: int = config.AI_MAX_TOKENS,
    ):
        self.model = model
        self.fallback_model = fallback_model
        self.max_tokens = max_tokens

    def generate(
        self,
        prompt: str,
        system_prompt: str,
        output_format: str = "text",
    ) -> str:
        raw_text, model_used, total_tokens = call_text_model(
            prompt=prompt,
            model=self.model,
            fallback_model=self.fallback_model,
            max_tokens=self.max_tokens,
            system_prompt=system_prompt,
        )
        logger.info(
            f"ai-transform via {model_used}: {total_tokens} tokens, "
            f"format={output_format}"
        )
        return raw_text


class HttpTextGenerator:
    """Text-generation endpoint reached over HTTP.

    The endpoint accepts ``{"prompt", "systemPrompt", "outputFormat"}`` and
    answers ``{"response": "<text>"}``. An optional bearer token is sent as
    the Authorization header; the core never inspects it.
    """

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        timeout: float = config.TEXTGEN_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self.token = token
        self.timeout = timeout
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def generate(
        self,
        prompt: str,
        system_prompt: str,
        output_format: str = "text",
    ) -> str:
        payload: dict[str, Any] = {
            "prompt": prompt,
            "systemPrompt": system_prompt,
            "outputFormat": output_format,
        }
        start_time = time.time()

        if self._client is not None:
            response = self._client.post(
                self.url, json=payload, headers=self._headers(), timeout=self.timeout
            )
        else:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.url, json=payload, headers=self._headers())

        response.raise_for_status()
        body = response.json()
        elapsed = int((time.time() - start_time) * 1000)
        logger.info(f"Text generation endpoint answered in {elapsed}ms")

        if isinstance(body, dict) and "response" in body:
            text = body["response"]
        else:
            text = body
        return text if isinstance(text, str) else str(text)
