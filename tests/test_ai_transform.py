import json

import httpx
import pytest

from fieldmap.llm import factory
from fieldmap.llm.ai_transform import (
    DEFAULT_SYSTEM_PROMPT,
    AITransformAdapter,
    AITransformCache,
    AITransformConfig,
    build_prompt,
    parse_reply,
)
from fieldmap.llm.backends import AnthropicTextGenerator, HttpTextGenerator
from fieldmap.llm.client import parse_llm_json_response, strip_code_fences

from conftest import FakeTextGenerator


# ==========================================================
# PROMPT / REPLY
# ==========================================================


def test_build_prompt_plain():
    cfg = AITransformConfig(prompt="Abbreviate the state")
    assert build_prompt("New York", cfg) == 'Input: "New York"\n\nTask: Abbreviate the state'


def test_build_prompt_with_examples_and_json():
    cfg = AITransformConfig.model_validate(
        {
            "prompt": "Split the name",
            "outputFormat": "json",
            "examples": [{"input": "Eric Adams", "output": {"first": "Eric"}}],
        }
    )
    prompt = build_prompt({"name": "Zohran Mamdani"}, cfg)

    assert prompt == (
        'Input: {"name": "Zohran Mamdani"}\n\nTask: Split the name'
        "\n\nExamples:\n"
        'Example 1:\nInput: "Eric Adams"\nOutput: {"first": "Eric"}\n\n'
        "\n\nRespond with valid JSON only."
    )


def test_build_prompt_structured_instruction():
    cfg = AITransformConfig(output_format="structured")
    assert build_prompt(1, cfg).endswith(
        "Respond with structured data matching the examples provided."
    )


def test_parse_reply_text_strips_fences():
    cfg = AITransformConfig()
    assert parse_reply("```\nNYC\n```", cfg) == "NYC"
    assert parse_reply("  NYC  ", cfg) == "NYC"


def test_parse_reply_json_variants():
    cfg = AITransformConfig(output_format="json")
    assert parse_reply('```json\n{"a": 1}\n```', cfg) == {"a": 1}
    assert parse_reply('Sure! Here it is: [1, 2] Hope that helps.', cfg) == [1, 2]
    assert parse_reply("no json at all", cfg) == "no json at all"


def test_parse_reply_expected_field():
    cfg = AITransformConfig.model_validate({"outputFormat": "json", "expectedField": "state"})
    assert parse_reply('{"state": "NY", "confidence": 0.9}', cfg) == "NY"
    assert parse_reply('{"other": 1}', cfg) == {"other": 1}


def test_client_helpers():
    assert strip_code_fences("plain") == "plain"
    assert parse_llm_json_response('prefix {"x": [1]} suffix') == {"x": [1]}


# ==========================================================
# ADAPTER
# ==========================================================


def test_adapter_sends_prompt_and_system_prompt():
    generator = FakeTextGenerator(replies=["NY"])
    adapter = AITransformAdapter(generator=generator)

    assert adapter.transform("New York", {"prompt": "Abbreviate"}) == "NY"
    call = generator.calls[0]
    assert call["system_prompt"] == DEFAULT_SYSTEM_PROMPT
    assert call["output_format"] == "text"
    assert call["prompt"].startswith('Input: "New York"')


def test_adapter_custom_system_prompt():
    generator = FakeTextGenerator()
    AITransformAdapter(generator=generator).transform(
        "x", {"systemPrompt": "You are terse."}
    )
    assert generator.calls[0]["system_prompt"] == "You are terse."


def test_adapter_failure_returns_original():
    generator = FakeTextGenerator(error=RuntimeError("service down"))
    adapter = AITransformAdapter(generator=generator)
    assert adapter.transform({"a": 1}, {"prompt": "anything"}) == {"a": 1}


def test_adapter_invalid_config_returns_original():
    adapter = AITransformAdapter(generator=FakeTextGenerator())
    assert adapter.transform("x", {"examples": "not a list"}) == "x"


def test_adapter_cache_only_when_requested():
    generator = FakeTextGenerator(replies=["one", "two", "three"])
    cache = AITransformCache()
    adapter = AITransformAdapter(generator=generator, cache=cache)

    assert adapter.transform("v", {"prompt": "p"}) == "one"
    assert adapter.transform("v", {"prompt": "p"}) == "two"
    assert len(cache) == 0

    cached = {"prompt": "p", "cacheResults": True}
    assert adapter.transform("v", cached) == "three"
    assert adapter.transform("v", cached) == "three"
    assert len(generator.calls) == 3


# ==========================================================
# CACHE
# ==========================================================


def test_cache_key_depends_on_value_and_prompt():
    key = AITransformCache.make_key({"b": 1, "a": 2}, "p")
    assert key == AITransformCache.make_key({"a": 2, "b": 1}, "p")
    assert key != AITransformCache.make_key({"a": 2, "b": 1}, "q")
    assert key.endswith(":p")


def test_cache_expiry():
    cache = AITransformCache(ttl=-1)
    cache.set("k", "v")
    assert cache.get("k") == (False, None)
    assert len(cache) == 0


def test_cache_evicts_when_full():
    cache = AITransformCache(max_entries=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)
    assert len(cache) == 2
    assert cache.get("c") == (True, 3)


# ==========================================================
# BACKENDS
# ==========================================================


def test_http_generator_posts_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["json"] = json.loads(request.read())
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"response": "NY"})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    generator = HttpTextGenerator(
        "https://textgen.test/generate", token="secret", client=client
    )

    assert generator.generate("prompt", "system", "json") == "NY"
    assert seen["json"] == {
        "prompt": "prompt",
        "systemPrompt": "system",
        "outputFormat": "json",
    }
    assert seen["auth"] == "Bearer secret"


def test_http_generator_raises_on_error_status():
    client = httpx.Client(
        transport=httpx.MockTransport(lambda request: httpx.Response(503))
    )
    generator = HttpTextGenerator("https://textgen.test/generate", client=client)

    with pytest.raises(httpx.HTTPStatusError):
        generator.generate("prompt", "system")


def test_factory_selects_backend(monkeypatch):
    monkeypatch.setattr(factory.config, "TEXTGEN_URL", None)
    assert isinstance(factory.get_text_generator(), AnthropicTextGenerator)

    generator = factory.get_text_generator(url="https://textgen.test/generate")
    assert isinstance(generator, HttpTextGenerator)

    monkeypatch.setattr(factory.config, "TEXTGEN_URL", "https://env.test/generate")
    assert factory.get_text_generator().url == "https://env.test/generate"


def test_anthropic_generator_without_key_fails(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    with pytest.raises(RuntimeError):
        AnthropicTextGenerator().generate("prompt", "system")
