import logging
import re
import threading
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

import game_context
from engine.reference_data import load_creation_options
from engine.save_load import state_dir
from engine.scheduler import RealtimeScheduler
from engine.state_store import RunStateStore
from game_session import GameSession
from ui.events import build_character_update, build_story

logger = logging.getLogger(__name__)

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


sessions = {}
_sessions_lock = threading.Lock()

_SESSION_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class StepRequest(BaseModel):
    session_id: str
    action: str | None = None
    choice: int | None = None
    text: str | None = None
    name: str | None = None
    gender: str | None = None
    age: int | None = None
    race: str | None = None
    class_name: str | None = None
    difficulty: str | None = None


class EventsRequest(BaseModel):
    session_id: str


def get_session(session_id: str) -> GameSession:
    if not _SESSION_ID.match(session_id or ""):
        raise HTTPException(status_code=400, detail="Invalid session_id")
    with _sessions_lock:
        if session_id not in sessions:
            store = RunStateStore.open(state_dir() / "sessions" / session_id)
            sessions[session_id] = GameSession(
                store,
                narrator=game_context.get_narrator(),
                scheduler=RealtimeScheduler(),
            )
            logger.info("Opened session %s", session_id)
        return sessions[session_id]


@app.get("/races")
def list_races():
    return load_creation_options(game_context.get_srd_client())["races"]


@app.get("/classes")
def list_classes():
    return load_creation_options(game_context.get_srd_client())["classes"]


@app.get("/state")
def get_state(session_id: str):
    # Read-only: timers advance in /step and /events, which return what they emit.
    session = get_session(session_id)
    with session.lock:
        state = session.store.snapshot()
        combat = session.combat.view() if session.combat else None
    return {
        "character": build_character_update(state)["character"],
        "story": build_story(state),
        "combat": combat,
        "gameOver": state["game_over"],
        "loading": state["loading"],
    }


@app.post("/step")
def step(req: StepRequest):
    session = get_session(req.session_id)
    payload: Dict[str, Any] = {
        "action": req.action,
        "choice": req.choice,
        "text": req.text,
        "name": req.name,
        "gender": req.gender,
        "age": req.age,
        "race": req.race,
        "class_name": req.class_name,
        "difficulty": req.difficulty,
    }
    payload = {k: v for k, v in payload.items() if v is not None}
    return session.step(payload)


@app.post("/events")
def events(req: EventsRequest):
    if req.session_id not in sessions:
        return []
    return sessions[req.session_id].drain()
