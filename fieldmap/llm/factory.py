"""Text generator factory.

Resolves the configured text-generation backend.
"""

import logging
from typing import Optional, Union

from fieldmap import config
from fieldmap.llm.backends import AnthropicTextGenerator, HttpTextGenerator

logger = logging.getLogger(__name__)


def get_text_generator(
    url: Optional[str] = None,
) -> Union[AnthropicTextGenerator, HttpTextGenerator]:
    """Get the backend for ai-transform.

    An explicit ``url`` or FIELDMAP_TEXTGEN_URL selects the HTTP endpoint;
    otherwise Claude is called directly (requires ANTHROPIC_API_KEY).
    """
    endpoint = url or config.TEXTGEN_URL
    if endpoint:
        logger.debug(f"Using HTTP text generator at {endpoint}")
        return HttpTextGenerator(url=endpoint, token=config.TEXTGEN_TOKEN)
    return AnthropicTextGenerator()
