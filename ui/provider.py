from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class UIProvider(ABC):
    """
    Rendering surface for a run. The session hands over ready-made payloads
    (see ui.events builders); a provider prints them or forwards them.
    """

    @abstractmethod
    def story(self, payload: Dict[str, Any]) -> None:
        """Narrative page: story text, choices, danger level, last error."""

    @abstractmethod
    def status(self, payload: Dict[str, Any]) -> None:
        """Character panel: hp/energy gauges, level, buffs, chapter."""

    @abstractmethod
    def combat(self, payload: Dict[str, Any]) -> None:
        """Encounter panel; payload["active"] is False once the fight closes."""

    @abstractmethod
    def combat_log(self, text: str) -> None:
        pass

    @abstractmethod
    def system(self, text: str, data: Optional[Dict[str, Any]] = None) -> None:
        pass

    @abstractmethod
    def error(self, text: str, data: Optional[Dict[str, Any]] = None) -> None:
        pass

    @abstractmethod
    def choice(self, prompt: str, options: List[str]) -> Optional[int]:
        """
        0-based index of the picked option. Non-blocking providers return
        None; the answer arrives with the next step instead.
        """

    @abstractmethod
    def text_input(self, prompt: str) -> Optional[str]:
        pass
