"""
OpenAI SDK client cache shared by the OpenAI and DeepSeek services.

DeepSeek exposes an OpenAI-compatible API, so both services use the
openai package with a different base_url. Clients are created lazily and
the most recently used ones are cached per (api_key, base_url) because every
user may bring their own key.
"""

import functools
import json
import logging
import re
from typing import Any, Optional

from openai import OpenAI

logger = logging.getLogger(__name__)

CLIENT_CACHE_SIZE = 32

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


@functools.lru_cache(maxsize=CLIENT_CACHE_SIZE)
def _create_client(api_key: str, base_url: str) -> OpenAI:
    logger.debug(f"Created OpenAI-compatible client for {base_url}")
    return OpenAI(api_key=api_key, base_url=base_url)


def get_openai_client(api_key: Optional[str], base_url: str) -> Optional[OpenAI]:
    """
    Return a cached client, or None when no API key is available.
    """
    if not api_key:
        return None

    return _create_client(api_key, base_url)


def parse_json_reply(text: Optional[str]) -> Any:
    """
    Parse a chat reply that should be a JSON object.

    Tolerates a surrounding markdown code fence.

    Raises:
        ValueError: If the reply is empty or not valid JSON.
    """
    if not text or not text.strip():
        raise ValueError("Empty model reply")

    cleaned = text.strip()
    match = _FENCE_RE.match(cleaned)
    if match:
        cleaned = match.group(1)

    return json.loads(cleaned)
