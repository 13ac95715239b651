"""Load and fill the packaged prompt templates."""

from functools import lru_cache
from pathlib import Path
from string import Template
from typing import Any
from schemair.config.logging import get_logger

logger = get_logger(__name__)

PROMPTS_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=None)
def load_prompt(path: str) -> str:
    """
    Load a prompt file relative to the prompts package.

    Args:
        path: e.g. 'roles/schema_system.txt'

    Returns:
        Prompt file contents

    Raises:
        FileNotFoundError: If the prompt file doesn't exist
    """
    full_path = PROMPTS_DIR / path
    if not full_path.is_file():
        logger.error(f"Prompt file not found: {full_path}")
        raise FileNotFoundError(f"Prompt file not found: {full_path}")
    logger.debug(f"Loaded prompt from {path}")
    return full_path.read_text(encoding="utf-8")


def render_prompt(template: str, **kwargs: Any) -> str:
    """
    Fill ``$NAME`` placeholders.

    Templates embed JSON examples, so ``string.Template`` is used instead of
    ``str.format`` to leave braces alone.

    Raises:
        KeyError: If a placeholder has no value
    """
    try:
        return Template(template).substitute(**kwargs)
    except KeyError as e:
        logger.error(f"Missing placeholder in template: {e}")
        raise
