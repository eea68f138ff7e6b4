"""
Read-only SRD reference lists (races, classes) for character creation.
Failures are logged and degrade to empty option lists.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.dnd5eapi.co"

_RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}

RACE_TRANSLATIONS = {
    "dragonborn": "용족 (Dragonborn)",
    "dwarf": "드워프 (Dwarf)",
    "elf": "엘프 (Elf)",
    "gnome": "노움 (Gnome)",
    "half-elf": "하프엘프 (Half-Elf)",
    "half-orc": "하프오크 (Half-Orc)",
    "halfling": "하플링 (Halfling)",
    "human": "인간 (Human)",
    "tiefling": "티플링 (Tiefling)",
}

CLASS_TRANSLATIONS = {
    "barbarian": "야만전사 (Barbarian)",
    "bard": "바드 (Bard)",
    "cleric": "클레릭 (Cleric)",
    "druid": "드루이드 (Druid)",
    "fighter": "파이터 (Fighter)",
    "monk": "수도승 (Monk)",
    "paladin": "팔라딘 (Paladin)",
    "ranger": "레인저 (Ranger)",
    "rogue": "로그 (Rogue)",
    "sorcerer": "소서러 (Sorcerer)",
    "warlock": "워락 (Warlock)",
    "wizard": "위저드 (Wizard)",
}


def _is_retryable_exception(exc: Exception) -> bool:
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRYABLE_STATUS_CODES
    return False


def get_json_with_retry(
    client: httpx.Client,
    path: str,
    *,
    retries: int = 0,
    backoff_seconds: float = 0.2,
) -> Dict[str, Any]:
    attempts = max(0, int(retries)) + 1
    for attempt_index in range(attempts):
        try:
            response = client.get(path, headers={"Accept": "application/json"})
            response.raise_for_status()
            payload = response.json()
            return payload if isinstance(payload, dict) else {"results": payload}
        except Exception as exc:
            if not _is_retryable_exception(exc) or attempt_index >= attempts - 1:
                raise
            delay = max(0.0, backoff_seconds) * (2 ** attempt_index)
            logger.info("Retrying %s in %.2fs after %s", path, delay, exc)
            if delay > 0:
                time.sleep(delay)
    return {}


def translate_list(items: List[Dict[str, Any]], table: Dict[str, str]) -> List[str]:
    out = []
    for item in items:
        if not isinstance(item, dict):
            continue
        index = str(item.get("index") or "")
        name = str(item.get("name") or "")
        out.append(table.get(index) or table.get(name.lower()) or name)
    return [n for n in out if n]


class SrdClient:
    API_PREFIX = "/api"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        retries: int = 2,
        backoff_seconds: float = 0.2,
        http_client: httpx.Client | None = None,
    ) -> None:
        base_url = base_url or os.environ.get("SRD_BASE_URL") or DEFAULT_BASE_URL
        self._retries = retries
        self._backoff_seconds = backoff_seconds
        self.client = http_client or httpx.Client(base_url=base_url, timeout=timeout)

    def _list(self, endpoint: str) -> List[Dict[str, Any]]:
        payload = get_json_with_retry(
            self.client,
            f"{self.API_PREFIX}/{endpoint}",
            retries=self._retries,
            backoff_seconds=self._backoff_seconds,
        )
        results = payload.get("results", [])
        return results if isinstance(results, list) else []

    def get_races(self) -> List[str]:
        return translate_list(self._list("races"), RACE_TRANSLATIONS)

    def get_classes(self) -> List[str]:
        return translate_list(self._list("classes"), CLASS_TRANSLATIONS)


def load_creation_options(client: SrdClient) -> Dict[str, List[str]]:
    """Race and class display names; each list is empty when its call fails."""
    options = {"races": [], "classes": []}
    for key, fetch in (("races", client.get_races), ("classes", client.get_classes)):
        try:
            options[key] = fetch()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to load %s from SRD: %s", key, e)
    return options
