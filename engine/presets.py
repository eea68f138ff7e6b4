"""
Static lookup tables: difficulty presets and race/class traits.
Keys are closed enums; unknown names are rejected at the boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from engine.validator import validate


class Difficulty(str, Enum):
    CASUAL = "casual"
    STANDARD = "standard"
    HARD = "hard"


class StatTarget(str, Enum):
    HP = "hp"
    ENERGY = "energy"
    STRENGTH = "strength"
    DEXTERITY = "dexterity"
    CONSTITUTION = "constitution"


# hp/energy are scalar run-state fields, never entries of the buff mapping.
SCALAR_TARGETS = {StatTarget.HP, StatTarget.ENERGY}


@dataclass(frozen=True)
class DifficultyPreset:
    enemy_level_offset: int
    recovery_scale: float
    label: str


@dataclass(frozen=True)
class Trait:
    name: str
    summary: str
    bonuses: Dict[StatTarget, int] = field(default_factory=dict)


DIFFICULTY_PRESETS: Dict[Difficulty, DifficultyPreset] = {
    Difficulty.CASUAL: DifficultyPreset(enemy_level_offset=-1, recovery_scale=1.5, label="여유"),
    Difficulty.STANDARD: DifficultyPreset(enemy_level_offset=0, recovery_scale=1.0, label="표준"),
    Difficulty.HARD: DifficultyPreset(enemy_level_offset=1, recovery_scale=0.75, label="고난"),
}


def _trait(name, summary, **bonuses) -> Trait:
    return Trait(name, summary, {StatTarget(k): int(v) for k, v in bonuses.items()})


RACE_TRAITS: Dict[str, Trait] = {
    "용족 (Dragonborn)": _trait("용의 분노", "타고난 용혈로 근력이 돋보이며 강인한 숨결을 품습니다.", strength=3, energy=5),
    "드워프 (Dwarf)": _trait("돌같은 인내", "두터운 체력과 인내심으로 긴 전투에도 버팁니다.", hp=12, constitution=2),
    "엘프 (Elf)": _trait("예리한 감각", "민첩한 반사신경과 기민한 스텝으로 위험을 피합니다.", dexterity=3, energy=10),
    "노움 (Gnome)": _trait("기민한 두뇌", "호기심 많은 정신력으로 마법 에너지를 비축합니다.", energy=12),
    "하프엘프 (Half-Elf)": _trait("다재다능", "엘프와 인간의 장점을 고르게 이어받았습니다.", hp=6, energy=6),
    "하프오크 (Half-Orc)": _trait("잔혹한 힘", "거친 체격으로 강력한 일격을 가합니다.", strength=3, hp=10),
    "하플링 (Halfling)": _trait("날렵한 발놀림", "작은 체구로 민첩하게 움직이며 지구력을 아낍니다.", dexterity=2, energy=6),
    "인간 (Human)": _trait("적응력", "어떤 환경에서도 스스로를 빠르게 단련합니다.", strength=1, dexterity=1, energy=6),
    "티플링 (Tiefling)": _trait("지옥의 회복력", "내재된 마력이 에너지를 끌어올립니다.", energy=14),
}

CLASS_TRAITS: Dict[str, Trait] = {
    "야만전사 (Barbarian)": _trait("광전사의 분노", "분노를 폭발시켜 체력과 근력이 상승합니다.", hp=10, strength=2),
    "바드 (Bard)": _trait("격려의 멜로디", "노래로 정신을 북돋아 에너지를 회복합니다.", energy=8),
    "클레릭 (Cleric)": _trait("신성한 축복", "신의 은총이 체력과 체질을 보강합니다.", hp=8, constitution=2),
    "드루이드 (Druid)": _trait("자연의 숨결", "자연과 교감하며 에너지를 안정적으로 끌어옵니다.", energy=10, dexterity=1),
    "파이터 (Fighter)": _trait("숙련된 전투술", "훈련된 전투 감각으로 균형 잡힌 능력을 보입니다.", hp=6, strength=2, dexterity=1),
    "수도승 (Monk)": _trait("기의 흐름", "호흡을 다스려 에너지 소모를 줄입니다.", energy=9, dexterity=2),
    "팔라딘 (Paladin)": _trait("정의의 맹세", "신성한 힘이 체력을 지탱하고 공격을 보강합니다.", hp=8, strength=2),
    "레인저 (Ranger)": _trait("사냥꾼의 직감", "원거리 감각과 지구력이 향상됩니다.", dexterity=3, energy=8),
    "로그 (Rogue)": _trait("은신과 기민함", "재빠른 움직임으로 공격 기회를 노립니다.", dexterity=4, energy=6),
    "소서러 (Sorcerer)": _trait("선천적 마법", "타고난 마력이 에너지를 빠르게 모읍니다.", energy=15),
    "워락 (Warlock)": _trait("계약의 힘", "계약으로 얻은 마력이 지구력을 보충합니다.", energy=12),
    "위저드 (Wizard)": _trait("학자의 통찰", "연구로 쌓은 마력 축적이 에너지를 높입니다.", energy=15),
}


def parse_difficulty(value) -> Difficulty:
    if isinstance(value, Difficulty):
        return value
    key = str(value or "").strip().lower()
    validate(key in {d.value for d in Difficulty}, f"Unknown difficulty: {value!r}")
    return Difficulty(key)


def parse_stat_target(value) -> StatTarget:
    if isinstance(value, StatTarget):
        return value
    key = str(value or "").strip().lower()
    validate(key in {t.value for t in StatTarget}, f"Unknown stat target: {value!r}")
    return StatTarget(key)


def is_stat_target(value) -> bool:
    try:
        parse_stat_target(value)
    except ValueError:
        return False
    return True


def difficulty_preset(value) -> DifficultyPreset:
    return DIFFICULTY_PRESETS[parse_difficulty(value)]


def get_race_trait(name: str) -> Optional[Trait]:
    return RACE_TRAITS.get(name)


def get_class_trait(name: str) -> Optional[Trait]:
    return CLASS_TRAITS.get(name)


def format_trait_bonuses(trait: Optional[Trait]) -> str:
    if not trait:
        return ""
    return ", ".join(f"{target.value} +{amount}" for target, amount in trait.bonuses.items())
