"""AI-backed transformation of a single value.

Builds a prompt from the value, the task and optional examples, sends it to
a TextGenerator and parses the reply as text or JSON. Any failure returns
the original value. Results can be memoised in a caller-owned
AITransformCache.
"""

import hashlib
import json
import logging
import time
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fieldmap import config
from fieldmap.llm.backends import TextGenerator
from fieldmap.llm.client import parse_llm_json_response, strip_code_fences

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a data transformation assistant. Transform the input "
    "according to the instructions provided."
)

JSON_INSTRUCTION = "\n\nRespond with valid JSON only."
STRUCTURED_INSTRUCTION = (
    "\n\nRespond with structured data matching the examples provided."
)


class AITransformExample(BaseModel):
    input: Any = None
    output: Any = None


class AITransformConfig(BaseModel):
    """Options of an ai-transform step (camelCase in step configs)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    prompt: str = Field(default="Transform this data")
    system_prompt: Optional[str] = Field(default=None)
    output_format: str = Field(
        default="text", description="'text', 'json' or 'structured'"
    )
    examples: list[AITransformExample] = Field(default_factory=list)
    cache_results: bool = Field(default=False)
    expected_field: Optional[str] = Field(
        default=None,
        description="When the reply is a JSON object, return only this field",
    )

    @property
    def wants_json(self) -> bool:
        return self.output_format in ("json", "structured")


def _dump(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)


def build_prompt(value: Any, cfg: AITransformConfig) -> str:
    """Assemble the user prompt for a value."""
    prompt = f"Input: {_dump(value)}\n\nTask: {cfg.prompt or 'Transform this data'}"

    if cfg.examples:
        prompt += "\n\nExamples:\n"
        for idx, example in enumerate(cfg.examples, start=1):
            prompt += (
                f"Example {idx}:\nInput: {_dump(example.input)}\n"
                f"Output: {_dump(example.output)}\n\n"
            )

    if cfg.output_format == "json":
        prompt += JSON_INSTRUCTION
    elif cfg.output_format == "structured":
        prompt += STRUCTURED_INSTRUCTION

    return prompt


def parse_reply(raw_text: str, cfg: AITransformConfig) -> Any:
    """Interpret a text-generation reply according to output_format.

    JSON formats fall back to the raw text when nothing parses.
    """
    if not cfg.wants_json:
        return strip_code_fences(raw_text)

    try:
        parsed = parse_llm_json_response(raw_text)
    except (json.JSONDecodeError, ValueError):
        logger.warning("Could not parse AI response as JSON")
        return raw_text

    if (
        cfg.expected_field
        and isinstance(parsed, dict)
        and cfg.expected_field in parsed
    ):
        return parsed[cfg.expected_field]
    return parsed


class _CacheEntry:
    """In-memory cache entry with TTL."""

    __slots__ = ("data", "created_at", "ttl")

    def __init__(self, data: Any, ttl: int):
        self.data = data
        self.created_at = time.time()
        self.ttl = ttl

    @property
    def expired(self) -> bool:
        return time.time() - self.created_at > self.ttl


class AITransformCache:
    """Caller-owned memo of ai-transform results.

    Keyed by a hash of the input value plus the prompt. Entries expire
    after ``ttl`` seconds.
    """

    def __init__(self, ttl: int = config.AI_CACHE_TTL, max_entries: int = 1000):
        self.ttl = ttl
        self.max_entries = max_entries
        self._entries: dict[str, _CacheEntry] = {}

    @staticmethod
    def make_key(value: Any, prompt: str) -> str:
        digest = hashlib.md5(
            json.dumps(value, sort_keys=True, default=str).encode()
        ).hexdigest()
        return f"{digest}:{prompt}"

    def get(self, key: str) -> tuple[bool, Any]:
        """Return (hit, data)."""
        entry = self._entries.get(key)
        if entry and not entry.expired:
            return True, entry.data
        if entry:
            del self._entries[key]
        return False, None

    def set(self, key: str, data: Any) -> None:
        if len(self._entries) >= self.max_entries:
            expired_keys = [k for k, v in self._entries.items() if v.expired]
            for k in expired_keys:
                del self._entries[k]
            if len(self._entries) >= self.max_entries:
                oldest = min(self._entries, key=lambda k: self._entries[k].created_at)
                del self._entries[oldest]
        self._entries[key] = _CacheEntry(data, self.ttl)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class AITransformAdapter:
    """Runs ai-transform against a TextGenerator. Never raises."""

    def __init__(
        self,
        generator: Optional[TextGenerator] = None,
        cache: Optional[AITransformCache] = None,
    ):
        self._generator = generator
        self.cache = cache

    @property
    def generator(self) -> TextGenerator:
        if self._generator is None:
            from fieldmap.llm.factory import get_text_generator

            self._generator = get_text_generator()
        return self._generator

    def transform(self, value: Any, options: Optional[dict[str, Any]] = None) -> Any:
        try:
            cfg = AITransformConfig.model_validate(options or {})
        except Exception as e:
            logger.error(f"Invalid ai-transform config: {e}")
            return value

        cache_key = None
        if cfg.cache_results and self.cache is not None:
            cache_key = AITransformCache.make_key(value, cfg.prompt)
            hit, cached = self.cache.get(cache_key)
            if hit:
                logger.debug("ai-transform cache hit")
                return cached

        try:
            raw_text = self.generator.generate(
                build_prompt(value, cfg),
                cfg.system_prompt or DEFAULT_SYSTEM_PROMPT,
                cfg.output_format,
            )
            result = parse_reply(raw_text, cfg)
        except Exception as e:
            logger.error(f"AI transformation failed: {e}")
            return value

        if cache_key is not None:
            self.cache.set(cache_key, result)
        return result
