import argparse
import logging
import time

import game_context
from engine.combat import ATTACK_COST
from engine.reference_data import load_creation_options
from engine.save_load import state_dir
from engine.scheduler import Scheduler
from engine.state_store import RunStateStore
from flow.character_creation import run_character_creation
from game_session import GameSession
from ui.cli_provider import CLIProvider
from ui.ui import UI

logger = logging.getLogger(__name__)

REST_OPTION = "휴식한다"
QUIT_OPTION = "그만둔다"


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Dice-driven text adventure (terminal).")
    parser.add_argument("--continue", dest="resume", action="store_true", help="Resume the saved run instead of creating a character.")
    parser.add_argument("--fast", action="store_true", help="Skip combat pacing delays.")
    parser.add_argument("--state-dir", default=None, help="Directory for the saved run (default: STORY_STATE_DIR or repo root).")
    parser.add_argument("--verbose", action="store_true", help="Log debug output.")
    args, _ = parser.parse_known_args(argv)
    return args


def start_new_run(session, ui):
    options = load_creation_options(game_context.get_srd_client())
    if not options["races"] or not options["classes"]:
        ui.error("종족/클래스 목록을 불러오지 못했습니다. 특성 없이 진행합니다.")
    character, difficulty = run_character_creation(ui, options["races"], options["classes"])
    ui.system("이야기를 불러오는 중...")
    session.step({
        "action": "start",
        "name": character["name"],
        "gender": character["gender"],
        "age": character["age"],
        "race": character["race"],
        "class_name": character["class_name"],
        "difficulty": difficulty.value,
    })


def run_combat(session, ui, sleep):
    """Drive one encounter until its result closes the fight."""
    # A queued intro timer opens the encounter; otherwise open it now.
    session.scheduler.run_until_idle(sleep=sleep)
    if not session.combat:
        session.begin_combat()
    while session.combat:
        if session.combat.actions():
            idx = ui.choice("행동을 선택하세요:", [f"공격 (에너지 {ATTACK_COST})", "재정비"])
            session.step({"action": "attack" if idx == 0 else "refocus"})
        session.scheduler.run_until_idle(sleep=sleep)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sleep = None if args.fast else time.sleep

    ui = UI(CLIProvider())
    store = RunStateStore.open(args.state_dir or state_dir())
    session = GameSession(store, narrator=game_context.get_narrator(), scheduler=Scheduler(), ui=ui)

    if args.resume and store.get("story"):
        session.step({"action": "state"})
    else:
        start_new_run(session, ui)

    while True:
        state = store.snapshot()
        if state["game_over"]:
            ui.system("당신의 모험은 여기서 끝났습니다.")
            break
        if state["pending_combat"]:
            run_combat(session, ui, sleep)
            continue
        if not state["choices"]:
            ui.system("모험이 끝났습니다.")
            break

        options = list(state["choices"]) + [REST_OPTION, QUIT_OPTION]
        idx = ui.choice("무엇을 하시겠습니까?", options)
        picked = options[idx]
        if picked == QUIT_OPTION:
            logger.info("Player quit at chapter %d", state["chapter"])
            break
        ui.system("이야기를 불러오는 중...")
        if picked == REST_OPTION:
            session.step({"action": "rest"})
        else:
            session.step({"action": "choose", "choice": idx})


if __name__ == "__main__":
    main()
