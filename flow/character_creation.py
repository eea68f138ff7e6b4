from engine.presets import (
    DIFFICULTY_PRESETS,
    SCALAR_TARGETS,
    Difficulty,
    StatTarget,
    format_trait_bonuses,
    get_class_trait,
    get_race_trait,
    parse_difficulty,
)
from engine.state_store import DEFAULT_ENERGY, DEFAULT_HP
from engine.validator import validate

GENDERS = ["모름", "남성", "여성", "기타"]


def create_character(name, gender="모름", age=18, race="", class_name=""):
    name = str(name or "").strip()
    validate(name, "Missing name")
    try:
        age = int(age)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid age: {age!r}")
    validate(age >= 1, "Age must be at least 1")

    traits = [t for t in (get_race_trait(race), get_class_trait(class_name)) if t]
    return {
        "name": name,
        "gender": gender or "모름",
        "age": age,
        "race": race or "",
        "class_name": class_name or "",
        "traits": [t.name for t in traits],
    }


def trait_bonuses(race, class_name):
    """Sum race + class trait bonuses per stat target."""
    totals = {}
    for trait in (get_race_trait(race), get_class_trait(class_name)):
        if not trait:
            continue
        for target, amount in trait.bonuses.items():
            totals[target] = totals.get(target, 0) + amount
    return totals


def background_text(character):
    return (
        f"당신의 이름은 {character['name']}이며, {character['age']}살 {character['gender']} "
        f"{character['race']} {character['class_name']}입니다. 여정이 시작됩니다."
    )


def begin_run(store, character, difficulty=Difficulty.STANDARD):
    """
    Reset the store and fold trait bonuses into the starting run:
    hp/energy bonuses raise the starting values (clamped), the rest become buffs.
    """
    difficulty = parse_difficulty(difficulty)
    bonuses = trait_bonuses(character.get("race"), character.get("class_name"))
    store.restart()
    store.set_character(character, difficulty=difficulty, background=background_text(character))
    store.set_hp(DEFAULT_HP + bonuses.get(StatTarget.HP, 0))
    store.set_energy(DEFAULT_ENERGY + bonuses.get(StatTarget.ENERGY, 0))
    buffs = {t.value: v for t, v in bonuses.items() if t not in SCALAR_TARGETS}
    if buffs:
        store.add_buffs(buffs)
    return store.snapshot()


def prompt_choice(ui, options, show_desc=None):
    """Numbered single pick over `options`; re-asks until the answer is in range."""
    for number, option in enumerate(options, start=1):
        extra = (show_desc or {}).get(option)
        ui.system(f"{number}. {option} - {extra}" if extra else f"{number}. {option}")
    while True:
        raw = (ui.text_input("> ") or "").strip()
        if raw.isdigit() and 1 <= int(raw) <= len(options):
            return options[int(raw) - 1]
        ui.error(f"1부터 {len(options)} 사이의 번호를 입력하세요.")


def prompt_age(ui, default=18):
    while True:
        raw = (ui.text_input(f"나이 (기본 {default}): ") or "").strip()
        if not raw:
            return default
        try:
            age = int(raw)
        except ValueError:
            ui.error("숫자를 입력하세요.")
            continue
        if age >= 1:
            return age
        ui.error("나이는 1 이상이어야 합니다.")


def _trait_descriptions(names, lookup):
    out = {}
    for name in names:
        trait = lookup(name)
        if trait:
            out[name] = f"{trait.name} ({format_trait_bonuses(trait)})"
    return out


def run_character_creation(ui, races, classes):
    """
    Interactive creation for blocking UIs. Returns (character, difficulty).
    Race/class lists come from the reference service and may be empty.
    """
    name = ""
    while not name:
        name = (ui.text_input("이름: ") or "").strip()
        if not name:
            ui.error("이름을 입력하세요.")

    ui.system("성별을 선택하세요:")
    gender = prompt_choice(ui, GENDERS)
    age = prompt_age(ui)

    race = ""
    if races:
        ui.system("종족을 선택하세요:")
        race = prompt_choice(ui, races, show_desc=_trait_descriptions(races, get_race_trait))
    class_name = ""
    if classes:
        ui.system("클래스를 선택하세요:")
        class_name = prompt_choice(ui, classes, show_desc=_trait_descriptions(classes, get_class_trait))

    ui.system("난이도를 선택하세요:")
    labels = {d.value: DIFFICULTY_PRESETS[d].label for d in Difficulty}
    difficulty = prompt_choice(ui, [d.value for d in Difficulty], show_desc=labels)

    character = create_character(name, gender=gender, age=age, race=race, class_name=class_name)
    ui.system(f"캐릭터 생성 완료: {character['name']} ({', '.join(character['traits']) or '특성 없음'})")
    return character, parse_difficulty(difficulty)
