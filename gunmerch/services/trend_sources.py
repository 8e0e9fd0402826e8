"""Trending-topic discovery from Reddit, news RSS feeds, and a built-in mock set."""
import logging
import xml.etree.ElementTree as ET

import httpx

from ..storage.activity_log import ActivityLog
from ..storage.settings import SettingsStore
from ..storage.trends import TrendStore

logger = logging.getLogger(__name__)

USER_AGENT = "GunMerchAI/1.0 (by /u/gunmerch)"
NEWS_ITEM_SCORE = 50
NEWS_ITEMS_PER_FEED = 10

MOCK_TRENDS = [
    {"topic": "New ATF pistol brace rule controversy", "source": "mock",
     "source_url": "https://example.com/atf-brace-rule", "engagement_score": 850},
    {"topic": "Best concealed carry holsters 2024", "source": "mock",
     "source_url": "https://example.com/best-holsters", "engagement_score": 620},
    {"topic": "9mm vs .45 ACP debate heats up again", "source": "mock",
     "source_url": "https://example.com/9mm-vs-45", "engagement_score": 540},
    {"topic": "Boating accident meme goes viral", "source": "mock",
     "source_url": "https://example.com/boating-accident", "engagement_score": 920},
    {"topic": "New concealed carry reciprocity bill", "source": "mock",
     "source_url": "https://example.com/reciprocity", "engagement_score": 780},
    {"topic": "Glock vs Sig Sauer reliability test", "source": "mock",
     "source_url": "https://example.com/glock-vs-sig", "engagement_score": 430},
    {"topic": "Ammo shortage tips and tricks", "source": "mock",
     "source_url": "https://example.com/ammo-shortage", "engagement_score": 390},
    {"topic": "First time gun buyer guide", "source": "mock",
     "source_url": "https://example.com/first-gun", "engagement_score": 510},
]


def _clean(text) -> str:
    return " ".join(str(text or "").split())


def _count(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def parse_reddit_listing(body: dict, min_score: int = 10) -> list[dict]:
    """Posts from a Reddit listing at or above ``min_score``.

    Raises ValueError when the body is not a listing; individual children that
    are not post objects are skipped.
    """
    data = body.get("data") if isinstance(body, dict) else None
    children = data.get("children") if isinstance(data, dict) else None
    if not isinstance(children, list):
        raise ValueError("Malformed Reddit listing")

    trends = []
    for child in children:
        post = child.get("data") if isinstance(child, dict) else None
        if not isinstance(post, dict):
            continue
        score = _count(post.get("score"))
        if score < min_score:
            continue
        title = _clean(post.get("title"))
        if not title:
            continue
        trends.append({
            "topic": title,
            "source": "reddit",
            "source_url": "https://reddit.com" + str(post.get("permalink") or ""),
            "engagement_score": abs(score) + abs(_count(post.get("num_comments"))),
        })
    return trends


def parse_rss(xml_text: str, limit: int = NEWS_ITEMS_PER_FEED) -> list[dict]:
    """RSS 2.0 ``<item>`` or Atom ``<entry>`` elements, first ``limit`` only."""
    root = ET.fromstring(xml_text)
    atom = "{http://www.w3.org/2005/Atom}"
    items = root.findall(".//item") or root.findall(f".//{atom}entry")

    trends = []
    for item in items[:limit]:
        title = item.findtext("title") or item.findtext(f"{atom}title")
        link = item.findtext("link")
        if not link:
            link_el = item.find(f"{atom}link")
            link = link_el.get("href") if link_el is not None else ""
        title = _clean(title)
        if not title:
            continue
        trends.append({
            "topic": title,
            "source": "news",
            "source_url": (link or "").strip(),
            "engagement_score": NEWS_ITEM_SCORE,
        })
    return trends


class TrendScanner:
    def __init__(self, trend_store: TrendStore, activity: ActivityLog, settings: SettingsStore, *,
                 sources: list[str], reddit_url: str, news_feeds: list[str],
                 mock_trends: list[dict] | None = None, timeout: float = 30):
        self.trend_store = trend_store
        self.activity = activity
        self.settings = settings
        self.sources = list(sources)
        self.reddit_url = reddit_url
        self.news_feeds = list(news_feeds)
        self.mock_trends = mock_trends if mock_trends is not None else MOCK_TRENDS
        self.timeout = timeout

    def get_mock_trends(self) -> list[dict]:
        return [dict(t) for t in self.mock_trends]

    def scan_reddit(self) -> list[dict]:
        with httpx.Client(timeout=self.timeout, headers={"User-Agent": USER_AGENT}) as client:
            r = client.get(self.reddit_url)
            r.raise_for_status()
            body = r.json()
        return parse_reddit_listing(body, int(self.settings.get("min_reddit_score", 10)))

    def scan_news_feeds(self) -> list[dict]:
        trends = []
        with httpx.Client(timeout=self.timeout, headers={"User-Agent": USER_AGENT},
                          follow_redirects=True) as client:
            for feed_url in self.news_feeds:
                try:
                    r = client.get(feed_url)
                    r.raise_for_status()
                    trends.extend(parse_rss(r.text))
                except (httpx.HTTPError, ET.ParseError) as e:
                    self.activity.log("warning", f"Failed to fetch feed: {feed_url}", meta={"error": str(e)})
        return trends

    def scan_source(self, source: str) -> list[dict]:
        if source == "reddit":
            return self.scan_reddit()
        if source == "news":
            return self.scan_news_feeds()
        if source == "mock":
            return self.get_mock_trends()
        logger.warning("Unknown trend source %r ignored", source)
        return []

    def scan_all_sources(self) -> list[dict]:
        """Scan every enabled source, store the merged list, and cache it for an hour."""
        all_trends = []
        for source in self.sources:
            try:
                all_trends.extend(self.scan_source(source))
            except (httpx.HTTPError, ValueError, ET.ParseError) as e:
                self.activity.log("warning", f"Trend source '{source}' failed: {e}", meta={"source": source})

        all_trends.sort(key=lambda t: t["engagement_score"], reverse=True)
        for trend in all_trends:
            trend["id"] = self.trend_store.store_trend(trend)
        self.trend_store.cache_current(all_trends)

        self.activity.log("info", f"Scanned all sources: {len(all_trends)} trends found")
        return all_trends
