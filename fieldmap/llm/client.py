"""Shared Anthropic client helpers.

Used by the Anthropic text generator behind ai-transform.
"""

import json
import logging
import os
import re
from typing import Any, Optional

from fieldmap import config

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")
_JSON_SPAN_RE = re.compile(r"\{[\s\S]*\}|\[[\s\S]*\]")


def get_anthropic_client():
    """Get Anthropic client if API key is available.

    Returns None if ANTHROPIC_API_KEY is not set.
    """
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        return None

    import httpx
    from anthropic import Anthropic

    return Anthropic(
        api_key=api_key,
        timeout=httpx.Timeout(
            connect=30.0,
            read=config.TEXTGEN_TIMEOUT,
            write=30.0,
            pool=30.0,
        ),
    )


def strip_code_fences(raw_text: str) -> str:
    """Remove a surrounding ```json ... ``` fence, if any."""
    content = raw_text.strip()
    if "```" not in content:
        return content
    match = _FENCE_RE.search(content)
    if match:
        return match.group(1).strip()
    content = re.sub(r"^```(?:json)?\s*\n?", "", content, flags=re.IGNORECASE)
    content = re.sub(r"\n?```\s*$", "", content)
    return content.strip()


def parse_llm_json_response(raw_text: str) -> Any:
    """Parse JSON from an LLM reply.

    LLMs wrap JSON in code fences or surround it with prose despite being
    told not to. Fences are stripped first; failing a direct parse, the
    outermost ``{...}`` or ``[...]`` span is parsed.

    Raises:
        json.JSONDecodeError: If no parseable JSON is found
    """
    content = strip_code_fences(raw_text)
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        match = _JSON_SPAN_RE.search(content)
        if not match:
            raise
        return json.loads(match.group(0))


def call_text_model(
    prompt: str,
    model: str = config.AI_MODEL,
    fallback_model: str = config.AI_MODEL_FALLBACK,
    max_tokens: int = config.AI_MAX_TOKENS,
    system_prompt: Optional[str] = None,
) -> tuple[str, str, int]:
    """Call Claude with a fallback model.

    Returns:
        (reply_text, model_used, total_tokens)

    Raises:
        RuntimeError: If the client is unavailable or both models fail
    """
    client = get_anthropic_client()
    if client is None:
        raise RuntimeError(
            "Text generation unavailable: set ANTHROPIC_API_KEY or FIELDMAP_TEXTGEN_URL"
        )

    kwargs: dict[str, Any] = {
        "max_tokens": max_tokens,
        "messages": [{"role": "user", "content": prompt}],
    }
    if system_prompt:
        kwargs["system"] = system_prompt

    for attempt_model in (model, fallback_model):
        try:
            response = client.messages.create(model=attempt_model, **kwargs)
            raw_text = "".join(
                block.text for block in response.content if hasattr(block, "text")
            )
            total_tokens = (
                response.usage.input_tokens + response.usage.output_tokens
            )
            return raw_text, attempt_model, total_tokens
        except Exception as e:
            if attempt_model == fallback_model:
                raise RuntimeError(
                    f"Text generation failed on {model} and {fallback_model}: {e}"
                ) from e
            logger.warning(
                f"{attempt_model} unavailable ({e}); retrying on {fallback_model}"
            )

    raise RuntimeError("No model produced a reply")
