"""
Prompt assembly for the story service.
Keeps the request inside a character budget by trimming history first.
"""

from typing import Any, Dict, List, Optional

BACKGROUND_LIMIT = 800
HISTORY_LIMIT = 1800
MIN_HISTORY_LIMIT = 400
PROMPT_LIMIT = 4000

STYLE_GUIDE = """
당신은 중세 판타지 텍스트 어드벤처 게임의 내레이터입니다.
- 3인칭 서술, 감각 묘사, 캐릭터 심리 묘사 중심으로 작성하세요.
- 스토리는 한국어로 3~5문장, 전투가 아닐 때만 선택지를 2~3개(각 5~20자) 제시하세요.
- 새 전투로 진입할 때는 isCombat을 true로 두고 1~2문장의 전투 진입 서사를 쓰며, choices는 빈 배열로 두세요.
- 전투 상황이 아니면 isCombat을 false로 설정하세요.
""".strip()

JSON_DIRECTIVE = """
반드시 순수 JSON만 출력해주세요. Markdown·설명 텍스트를 포함하지 마세요.
형식:
{
  "story": "...",
  "choices": ["...","..."],
  "isCombat": true|false,
  "dangerLevel": "low"|"medium"|"high",
  "enemyLevel": number,
  "buffs": [ { "target": "hp"|"strength"|"dexterity"|"constitution"|"energy", "amount": number } ]
}
""".strip()

COMBAT_OUTCOME_LABELS = {"victory": "승리", "defeat": "패배"}


def truncate_tail(text: str, max_length: int) -> str:
    return text[len(text) - max_length:] if len(text) > max_length else text


def limit_history(entries: List[str], max_length: int) -> List[str]:
    """Newest entries that fit in `max_length` characters, oldest first."""
    acc: List[str] = []
    total = 0
    for line in reversed(entries):
        next_length = total + len(line) + (1 if acc else 0)
        if next_length > max_length:
            break
        acc.append(line)
        total = next_length
    return list(reversed(acc))


def _context_lines(state: Dict[str, Any]) -> str:
    traits = state.get("traits") or []
    trait_line = f"보유 특성: {', '.join(traits)}\n" if traits else ""
    race, class_name = state.get("race"), state.get("class_name")
    character_line = f"캐릭터는 {race} {class_name}입니다. {trait_line}" if race and class_name else trait_line
    progression_line = f"현재 진행: 챕터 {state.get('chapter', 1)} (진행도 {state.get('chapter_progress', 0)}/3)\n"
    difficulty = state.get("difficulty")
    difficulty_line = (
        f"선택된 난이도: {difficulty}. 난이도에 맞춘 위험도/보상/회복 밸런스를 유지하세요.\n" if difficulty else ""
    )
    return f"{character_line}{progression_line}{difficulty_line}"


def _base(state: Dict[str, Any], history_limit: int) -> str:
    history = list(state.get("history") or [])
    trimmed = limit_history(history, history_limit)
    note = "(최근 대화 일부만 포함됨)\n" if len(history) > len(trimmed) else ""
    background = (state.get("background") or "").strip()
    background = f"{truncate_tail(background, BACKGROUND_LIMIT)}\n" if background else ""
    return f"{background}{_context_lines(state)}\n{note}이전 대화:\n" + "\n".join(trimmed)


def _make_prompt(base: str, choice: str, combat_outcome: Optional[str]) -> str:
    combat_line = f"전투 결과: {COMBAT_OUTCOME_LABELS.get(combat_outcome, combat_outcome)}\n" if combat_outcome else ""
    return (
        f"{STYLE_GUIDE}\n{JSON_DIRECTIVE}\n\n{base}\n{combat_line}"
        f"선택: {choice or '없음'}\n다음 이야기를 JSON 형식으로 생성해 주세요."
    )


def build_story_prompt(state: Dict[str, Any], choice: str, combat_outcome: Optional[str] = None) -> str:
    limit = HISTORY_LIMIT
    prompt = _make_prompt(_base(state, limit), choice, combat_outcome)
    # Shrink the history window at most twice, never below the minimum.
    for _ in range(2):
        over = len(prompt) - PROMPT_LIMIT
        if over <= 0:
            break
        limit = max(MIN_HISTORY_LIMIT, limit - over - 200)
        prompt = _make_prompt(_base(state, limit), choice, combat_outcome)
    return prompt
