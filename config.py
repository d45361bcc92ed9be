# config.py
from __future__ import annotations

import os
from pathlib import Path

APP_TITLE = "Schichttracker"
DEFAULT_OWNER_ID = "local"
DEFAULT_TICK_SECONDS = 1       # live duration is shown on the dashboard
WEEK_START = 0                 # Monday
LIVE_TARGET_MINUTES = 180      # progress ring of the running shift


def pick_data_dir() -> Path:
    """First writable candidate of DATA_DIR, /data, ./data; cwd as last resort."""
    candidates = []
    env = os.getenv("DATA_DIR")
    if env:
        candidates.append(Path(env))
    candidates += [Path("/data"), Path.cwd() / "data"]

    for p in candidates:
        try:
            p.mkdir(parents=True, exist_ok=True)
            t = p / ".rwtest"
            t.write_text("ok")
            t.unlink(missing_ok=True)
            return p
        except OSError:
            continue
    return Path.cwd()


def database_url(data_dir: Path | None = None) -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    data_dir = data_dir or pick_data_dir()
    return f"sqlite:///{(data_dir / 'shifts.db').as_posix()}"


def owner_id() -> str:
    return os.getenv("OWNER_ID") or DEFAULT_OWNER_ID


def tick_seconds() -> int:
    try:
        value = int(os.getenv("TICK_SECONDS", DEFAULT_TICK_SECONDS))
    except ValueError:
        return DEFAULT_TICK_SECONDS
    return value if 1 <= value <= 60 else DEFAULT_TICK_SECONDS


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
