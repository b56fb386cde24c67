import json
import sys
from datetime import datetime, timezone


_LEVELS = {"debug": 10, "info": 20, "warning": 30, "error": 40}
_min_level = _LEVELS["info"]


def set_level(level: str) -> None:
    global _min_level
    _min_level = _LEVELS.get((level or "info").lower(), _LEVELS["info"])


def log_event(level: str, event: str, **fields) -> None:
    lvl = level.lower()
    if _LEVELS.get(lvl, _LEVELS["info"]) < _min_level:
        return
    payload = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "level": lvl,
        "event": event,
    }
    payload.update(fields or {})
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
