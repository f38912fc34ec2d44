# handscript/prompt_store.py  - built-in prompt variants, optional file override
import logging
from typing import Optional

from .config import settings
from .prompts import PromptPolicy, build_prompt

logger = logging.getLogger(__name__)


def active_policy() -> PromptPolicy:
    return PromptPolicy.for_variant(settings.PROMPT_VARIANT, settings.PRESERVE_LINE_BREAKS)


def _read_prompt_file(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read().strip() or None
    except OSError as e:
        logger.warning("Could not read PROMPT_FILE %s, using built-in prompt: %s", path, e)
        return None


async def get_active_prompt() -> str:
    return _read_prompt_file(settings.PROMPT_FILE) or build_prompt(active_policy())
