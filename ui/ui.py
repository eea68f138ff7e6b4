from __future__ import annotations

from typing import Any, Dict, List, Optional
from ui.provider import UIProvider


class UI:
    """
    Session-facing facade. Game code calls these; the provider decides
    whether that means printing or queueing an event.
    """

    def __init__(self, provider: UIProvider):
        self.provider = provider

    def story(self, payload: Dict[str, Any]) -> None:
        self.provider.story(payload)

    def status(self, payload: Dict[str, Any]) -> None:
        self.provider.status(payload)

    def combat(self, payload: Dict[str, Any]) -> None:
        self.provider.combat(payload)

    def combat_log(self, text: str) -> None:
        self.provider.combat_log(text)

    def system(self, text: str, data: Optional[Dict[str, Any]] = None) -> None:
        self.provider.system(text, data)

    def error(self, text: str, data: Optional[Dict[str, Any]] = None) -> None:
        self.provider.error(text, data)

    def choice(self, prompt: str, options: List[str]) -> Optional[int]:
        return self.provider.choice(prompt, options)

    def text_input(self, prompt: str) -> Optional[str]:
        return self.provider.text_input(prompt)
