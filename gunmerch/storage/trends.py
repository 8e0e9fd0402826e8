from datetime import timedelta

from ..utils.clock import utcnow, to_iso, parse_iso
from .json_store import JsonStore

COLLECTION = "trends"
CACHE_COLLECTION = "cache"
CACHE_KEY = "current_trends"
ORDER_FIELDS = ("id", "engagement_score", "discovered_at")


def _normalize_topic(topic) -> str:
    return " ".join(str(topic or "").split())


class TrendStore:
    """Discovered topics with rolling-window dedup and ranked retrieval."""

    def __init__(self, store: JsonStore, clock=utcnow,
                 dedup_window: timedelta = timedelta(hours=24),
                 cache_ttl: timedelta = timedelta(hours=1)):
        self.store = store
        self.clock = clock
        self.dedup_window = dedup_window
        self.cache_ttl = cache_ttl

    def _find_recent(self, topic: str) -> dict | None:
        cutoff = self.clock() - self.dedup_window
        return self.store.first(
            COLLECTION,
            lambda t: t.get("topic") == topic and parse_iso(t.get("discovered_at")) > cutoff,
        )

    def store_trend(self, trend: dict) -> int:
        """Insert a trend, or update the score of the same topic seen in the last 24h."""
        topic = _normalize_topic(trend.get("topic"))
        if not topic:
            raise ValueError("trend topic is required")
        score = abs(int(trend.get("engagement_score") or 0))

        existing = self._find_recent(topic)
        if existing:
            existing["engagement_score"] = score
            self.store.upsert(COLLECTION, existing["id"], existing)
            return existing["id"]

        trend_id = self.store.next_id(COLLECTION)
        self.store.upsert(COLLECTION, trend_id, {
            "id": trend_id,
            "topic": topic,
            "source": str(trend.get("source") or "unknown"),
            "source_url": trend.get("source_url") or "",
            "engagement_score": score,
            "discovered_at": to_iso(self.clock()),
        })
        return trend_id

    def get_trend(self, trend_id: int) -> dict | None:
        return self.store.get(COLLECTION, trend_id)

    def get_trends(self, *, source: str | None = None, hours: int | None = 24,
                   order_by: str = "engagement_score", order: str = "desc",
                   limit: int = 20, offset: int = 0) -> list[dict]:
        cutoff = self.clock() - timedelta(hours=int(hours)) if hours else None

        def _match(t):
            if source and t.get("source") != source:
                return False
            if cutoff and parse_iso(t.get("discovered_at")) <= cutoff:
                return False
            return True

        if order_by not in ORDER_FIELDS:
            order_by = "engagement_score"
        key = (lambda t: parse_iso(t.get("discovered_at"))) if order_by == "discovered_at" \
            else (lambda t: t.get(order_by) or 0)
        rows = self.store.find(COLLECTION, _match)
        rows.sort(key=key, reverse=str(order).lower() != "asc")
        return rows[offset:offset + limit]

    def cache_current(self, trends: list[dict]):
        self.store.upsert(CACHE_COLLECTION, CACHE_KEY, {
            "expires_at": to_iso(self.clock() + self.cache_ttl),
            "trends": trends,
        })

    def get_current_trends(self, limit: int = 10) -> list[dict]:
        """Trends from the last scan while the cache is fresh, else from the store."""
        cached = self.store.get(CACHE_COLLECTION, CACHE_KEY)
        if cached and parse_iso(cached.get("expires_at")) > self.clock():
            trends = cached.get("trends") or []
        else:
            trends = self.get_trends(limit=limit)
        return trends[:limit]

    def clear_old_trends(self, days: int = 7) -> int:
        cutoff = self.clock() - timedelta(days=int(days))
        return self.store.delete_where(COLLECTION, lambda t: parse_iso(t.get("discovered_at")) < cutoff)
