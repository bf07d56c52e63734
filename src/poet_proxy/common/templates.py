"""System prompt templating helpers."""
from __future__ import annotations
import logging
from pathlib import Path

LOGGER = logging.getLogger("poet_proxy.common.templates")

DEFAULT_TEXT_SYSTEM_PROMPT = (
    "Act as a friendly and creative poet. Write a concise poem, up to 4 lines, in Persian."
)
DEFAULT_IMAGE_SYSTEM_PROMPT = (
    "Generate a visually appealing, artistic image based on the prompt. "
    "Focus on high detail and vibrant colors."
)


def load_template(path: str) -> str:
    """
    Load a prompt template file.

    Args:
        path: Path to template.
    """
    return Path(path).read_text(encoding="utf-8")


def resolve_system_prompt(path: str | None, default: str) -> str:
    """
    Read a system prompt from ``path``, falling back to ``default``.

    Blank files and unreadable paths both yield the default.

    Args:
        path: Optional template path.
        default: Built-in prompt.
    """
    if not path:
        return default
    try:
        text = load_template(path).strip()
    except OSError as e:
        LOGGER.warning("Failed to read system prompt %s: %s", path, e)
        return default
    return text or default
