import json
import os
from pathlib import Path


_BASE_DIR = Path(__file__).resolve().parents[1]


def state_dir() -> Path:
    """Directory holding persisted stores (STORY_STATE_DIR, else the repo root)."""
    configured = os.environ.get("STORY_STATE_DIR")
    return Path(configured) if configured else _BASE_DIR


def _resolve_path(filename: str | Path) -> Path:
    p = filename if isinstance(filename, Path) else Path(str(filename))
    return p if p.is_absolute() else (state_dir() / p)


def save_state(state, filename: str | Path = "story-store.json"):
    """
    Persist the run state as JSON. Written to a sibling temp file first and
    then renamed, so a crash mid-write leaves the previous save intact.
    """
    path = _resolve_path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(state, indent=2, ensure_ascii=False), encoding="utf-8")
    tmp.replace(path)


def load_state(filename: str | Path = "story-store.json"):
    """
    Load a persisted run state. Raises ValueError when the file does not
    hold a JSON object.
    """
    path = _resolve_path(filename)
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a state object")
    return data
