"""Text-generation collaborators for the ai-transform kind.

Provides the TextGenerator backends (Anthropic, HTTP endpoint), the
factory that picks one from configuration, and the adapter that turns a
value plus instructions into a prompt and parses the reply.
"""

from fieldmap.llm.ai_transform import (
    AITransformAdapter,
    AITransformCache,
    AITransformConfig,
)
from fieldmap.llm.backends import (
    AnthropicTextGenerator,
    HttpTextGenerator,
    TextGenerator,
)
from fieldmap.llm.factory import get_text_generator

__all__ = [
    "AITransformAdapter",
    "AITransformCache",
    "AITransformConfig",
    "AnthropicTextGenerator",
    "HttpTextGenerator",
    "TextGenerator",
    "get_text_generator",
]
