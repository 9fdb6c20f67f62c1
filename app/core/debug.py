"""WhatsApp debug trace: one JSON line per reconciler decision.

Enabled with WHATSAPP_DEBUG_LOG=true. This is a diagnostic side channel for
reconciling dropped or misattributed messages by hand, so write failures are
ignored.
"""

import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from app.settings import settings


def _log_path() -> Path:
    return Path(settings.whatsapp_debug_log_path)


def wa_debug_log(event: str, **fields: Any) -> None:
    """Append a trace entry.

    Args:
        event: Decision point (e.g. "message_create", "skip", "saved")
        **fields: message_id, from_me, to, from_, has_media, skip_reason,
            contact_found, contact_created, contact_name, phone, error, ...
    """
    if not settings.whatsapp_debug_log:
        return
    try:
        log_path = _log_path()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "ts_ms": int(time.time() * 1000),
            "event": event,
        }
        entry.update({k: v for k, v in fields.items() if v is not None})
        with open(log_path, "a") as f:
            f.write(json.dumps(entry, default=str) + "\n")
    except Exception:
        pass  # Silently fail if logging isn't possible


def read_wa_debug_logs(lines: int = 200) -> list[str]:
    """Return the last `lines` trace entries (raw JSON strings)."""
    log_path = _log_path()
    try:
        if not log_path.exists():
            return []
        all_lines = [line for line in log_path.read_text().strip().split("\n") if line]
        return all_lines[-lines:] if lines > 0 else []
    except OSError:
        return []


def clear_wa_debug_logs() -> bool:
    """Truncate the trace file."""
    try:
        log_path = _log_path()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_path.write_text("")
        return True
    except OSError:
        return False
