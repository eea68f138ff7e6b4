"""
Story Narrator
--------------
Thin client around the LLM text service.
Prompt text in, raw text out; parsing happens in engine.narrative.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from openai import OpenAI

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
MAX_OUTPUT_TOKENS = 900

_DEFAULT_KEY_FILE = Path(__file__).resolve().parent.parent / "apiKey"


class NarratorError(RuntimeError):
    pass


def load_api_key() -> Optional[str]:
    """OPENAI_API_KEY, else the first line of STORY_API_KEY_FILE (default: ./apiKey)."""
    if os.environ.get("OPENAI_API_KEY"):
        return os.environ["OPENAI_API_KEY"]
    key_file = Path(os.environ.get("STORY_API_KEY_FILE") or _DEFAULT_KEY_FILE)
    try:
        lines = key_file.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        return None
    return lines[0].strip() if lines and lines[0].strip() else None


def configured_model() -> str:
    return os.environ.get("STORY_MODEL") or DEFAULT_MODEL


class StoryNarrator:
    def __init__(self, openai_client, model: str = DEFAULT_MODEL):
        self.client = openai_client
        self.model = model

    def generate(self, prompt: str) -> str:
        """
        Send one prompt, return the raw reply text.
        Raises NarratorError when the service answers with nothing.
        """
        response = self.client.responses.create(
            model=self.model,
            input=[{"role": "user", "content": prompt}],
            max_output_tokens=MAX_OUTPUT_TOKENS,
        )
        text = self._extract_text(response)
        if not text.strip():
            raise NarratorError("Story service returned an empty response")
        return text

    def _extract_text(self, response) -> str:
        # SDK responses carry output_text; hand-built ones only the item list.
        text = getattr(response, "output_text", None)
        if isinstance(text, str):
            return text.strip()
        chunks = [
            part.text
            for item in (getattr(response, "output", None) or [])
            if getattr(item, "type", None) == "message"
            for part in item.content
            if getattr(part, "type", None) == "output_text"
        ]
        return "".join(chunks).strip()


def build_default_narrator() -> Optional[StoryNarrator]:
    """Narrator from env/apiKey config, or None when no key is available."""
    api_key = load_api_key()
    if not api_key:
        logger.warning("No API key found (env or apiKey file); story service disabled.")
        return None
    logger.info("Story narrator ready (model=%s)", configured_model())
    return StoryNarrator(OpenAI(api_key=api_key), model=configured_model())
