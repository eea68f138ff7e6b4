from __future__ import annotations

from typing import Any, Dict, List, Optional
from ui.provider import UIProvider


class CLIProvider(UIProvider):
    def story(self, payload: Dict[str, Any]) -> None:
        print()
        print(payload.get("story") or "")
        if payload.get("error"):
            self.error(payload["error"])

    def status(self, payload: Dict[str, Any]) -> None:
        ch = payload.get("character") or {}
        hp, energy = ch.get("hp") or {}, ch.get("energy") or {}
        line = (
            f"[Lv {ch.get('level')}] 체력 {hp.get('current')}/{hp.get('max')}  "
            f"에너지 {energy.get('current')}/{energy.get('max')}  "
            f"챕터 {ch.get('chapter')} ({ch.get('chapterProgress')}/3)"
        )
        buffs = ch.get("buffs") or {}
        if buffs:
            line += "  " + " ".join(f"{k} {v:+d}" for k, v in sorted(buffs.items()))
        print(line)

    def combat(self, payload: Dict[str, Any]) -> None:
        view = payload.get("combat")
        if not payload.get("active") or not view:
            print("-- 전투 종료 --")
            return
        print(
            f"[전투] 적 Lv {view['enemy_level']} ({view['danger_tier']}) "
            f"체력 {view['enemy_hp']}/{view['enemy_max_hp']} | "
            f"내 체력 {view['player_hp']} 에너지 {view['energy']}"
        )
        if view.get("notice"):
            print(f"  {view['notice']}")

    def combat_log(self, text: str) -> None:
        print(f"  · {text}")

    def system(self, text: str, data: Optional[Dict[str, Any]] = None) -> None:
        print(text)

    def error(self, text: str, data: Optional[Dict[str, Any]] = None) -> None:
        print(f"[오류] {text}")

    def choice(self, prompt: str, options: List[str]) -> int:
        print()
        if prompt:
            print(prompt)
        for i, opt in enumerate(options, start=1):
            print(f"{i}. {opt}")

        while True:
            raw = input("> ").strip()
            try:
                sel = int(raw)
                if 1 <= sel <= len(options):
                    return sel - 1
            except ValueError:
                pass
            self.error(f"1부터 {len(options)} 사이의 숫자를 입력하세요.")

    def text_input(self, prompt: str) -> str:
        return input(prompt).strip()
