"""Append-only operational record shown on the logs screen.

Pipeline logic never reads it back; it is the audit trail next to the regular
``logging`` output.
"""
import logging
from datetime import timedelta

from ..utils.clock import utcnow, to_iso, parse_iso
from .json_store import JsonStore

logger = logging.getLogger(__name__)

COLLECTION = "logs"
LOG_LEVELS = ("debug", "info", "warning", "error", "system")
REDACTED = "***REDACTED***"
SENSITIVE_MARKERS = ("authorization", "api-key", "api_key", "apikey", "token", "secret", "password")

_PY_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "system": logging.INFO,
}


def redact(data):
    """Recursively mask credential-looking keys before anything is persisted."""
    if isinstance(data, dict):
        out = {}
        for key, value in data.items():
            k = str(key)
            if any(marker in k.lower() for marker in SENSITIVE_MARKERS):
                out[k] = REDACTED
            else:
                out[k] = redact(value)
        return out
    if isinstance(data, (list, tuple)):
        return [redact(v) for v in data]
    if isinstance(data, (str, int, float, bool)) or data is None:
        return data
    return str(data)


class ActivityLog:
    def __init__(self, store: JsonStore, clock=utcnow):
        self.store = store
        self.clock = clock

    def log(self, level: str, message: str, design_id: int | None = None, meta: dict | None = None) -> int:
        if level not in LOG_LEVELS:
            level = "info"
        entry_id = self.store.next_id(COLLECTION)
        entry = {
            "id": entry_id,
            "level": level,
            "message": message,
            "design_id": int(design_id) if design_id else None,
            "meta": redact(meta) if meta else None,
            "created_at": to_iso(self.clock()),
        }
        self.store.upsert(COLLECTION, entry_id, entry)
        logger.log(_PY_LEVELS[level], "%s%s", message, f" (design {design_id})" if design_id else "")
        return entry_id

    def log_api_call(self, api_name: str, endpoint: str, request, response, success: bool = True) -> int:
        meta = {
            "api_name": api_name,
            "endpoint": endpoint,
            "request": request,
            "response": response,
            "success": bool(success),
        }
        return self.log("info" if success else "error", f"API Call: {api_name} - {endpoint}", None, meta)

    def log_design_action(self, design_id: int, action: str, data: dict | None = None) -> int:
        meta = {"action": action, "data": data or {}}
        return self.log("info", f"Design {action}: ID {design_id}", design_id, meta)

    def get_logs(self, *, level: str | None = None, design_id: int | None = None,
                 limit: int = 50, offset: int = 0) -> list[dict]:
        def _match(e):
            if level and e.get("level") != level:
                return False
            if design_id and e.get("design_id") != int(design_id):
                return False
            return True

        rows = self.store.find(COLLECTION, _match)
        rows.sort(key=lambda e: e["id"], reverse=True)
        return rows[offset:offset + limit]

    def count(self, level: str | None = None) -> int:
        return len(self.store.find(COLLECTION, lambda e: not level or e.get("level") == level))

    def clear_old_logs(self, days: int = 30) -> int:
        cutoff = self.clock() - timedelta(days=int(days))
        return self.store.delete_where(COLLECTION, lambda e: parse_iso(e.get("created_at")) < cutoff)

    def delete_all(self) -> int:
        return self.store.delete_where(COLLECTION, lambda e: True)
