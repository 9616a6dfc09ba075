import json
import os
import sys
from datetime import datetime, timezone


_LEVELS = {"debug": 10, "info": 20, "warning": 30, "error": 40}


def _enabled(level: str) -> bool:
    threshold = _LEVELS.get(os.getenv("LOG_LEVEL", "INFO").lower(), 20)
    return _LEVELS.get(level, 20) >= threshold


def log_event(level: str, event: str, **fields) -> None:
    level = level.lower()
    if not _enabled(level):
        return
    payload = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "level": level,
        "event": event,
    }
    payload.update(fields or {})
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
