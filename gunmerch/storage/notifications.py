from datetime import timedelta

from ..utils.clock import utcnow, to_iso, parse_iso
from .json_store import JsonStore

COLLECTION = "notifications"
DEFAULT_TTL = timedelta(hours=1)


def severity_for_key(key: str) -> str:
    if "sale" in key or "published" in key:
        return "success"
    if "error" in key:
        return "error"
    return "info"


class Notifier:
    """Fire-and-forget notices polled by the dashboard.

    A key that is still pending suppresses re-delivery of the same event until
    the operator acknowledges it (or it expires).
    """

    def __init__(self, store: JsonStore, clock=utcnow, ttl: timedelta = DEFAULT_TTL):
        self.store = store
        self.clock = clock
        self.ttl = ttl

    def _is_live(self, entry: dict | None) -> bool:
        return bool(entry) and parse_iso(entry.get("expires_at")) > self.clock()

    def notify(self, key: str, message: str, severity: str | None = None) -> bool:
        if self._is_live(self.store.get(COLLECTION, key)):
            return False
        now = self.clock()
        self.store.upsert(COLLECTION, key, {
            "key": key,
            "message": message,
            "severity": severity or severity_for_key(key),
            "created_at": to_iso(now),
            "expires_at": to_iso(now + self.ttl),
        })
        return True

    def pending(self) -> list[dict]:
        items = [n for n in self.store.list(COLLECTION) if self._is_live(n)]
        items.sort(key=lambda n: n["created_at"])
        return items

    def acknowledge(self, key: str) -> bool:
        if self.store.get(COLLECTION, key) is None:
            return False
        self.store.delete(COLLECTION, key)
        return True
