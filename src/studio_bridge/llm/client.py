"""Shared helpers around the text-generation call.

- Credential lookup (read per request, never cached)
- Fenced code block extraction from model output
"""

import logging
import os
import re
from typing import Iterable, Optional

from studio_bridge.config import API_KEY_ENV
from studio_bridge.errors import MissingCredentialError

logger = logging.getLogger(__name__)


def get_api_key(env_var: str = API_KEY_ENV) -> str:
    """Read the Gemini API key from the environment.

    Raises:
        MissingCredentialError: If the variable is unset or empty
    """
    api_key = os.environ.get(env_var)
    if not api_key:
        raise MissingCredentialError(env_var)
    return api_key


def extract_code_block(text: str, tags: Iterable[str] = ("luau",)) -> Optional[str]:
    """Return the contents of the first fenced block with a recognised tag.

    The opening fence must be immediately followed by one of `tags` and then
    whitespace, so a ```lua tag does not match a ```luau fence. Contents
    run up to the next ``` and are trimmed; fences are not included.

    Args:
        text: Raw model output
        tags: Accepted language tags

    Returns:
        The trimmed block contents, or None if no complete block is found
    """
    tags = [t for t in tags if t]
    if not tags:
        return None

    alternatives = "|".join(re.escape(t) for t in tags)
    pattern = re.compile(r"```(?:" + alternatives + r")(?=\s)(.*?)```", re.DOTALL)

    match = pattern.search(text)
    if match is None:
        return None
    return match.group(1).strip()
