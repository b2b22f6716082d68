"""
Feed entry normalization.
Converts feedparser entries to NewsRecord and merges feeds.
"""

import html
import re
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from sportrays.models import NewsRecord

NEWS_LIMIT = 150

_IMG_SRC_RE = re.compile(r"""<img[^>]+src=["']([^"']+)["']""", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _first_url(items: Any, *fields: str) -> Optional[str]:
    for item in items or []:
        for field in fields:
            url = item.get(field)
            if url:
                return url
    return None


def _html_bodies(entry: Any) -> List[str]:
    bodies = [block.get("value", "") for block in entry.get("content") or []]
    bodies.append(entry.get("summary") or "")
    return bodies


def extract_image(entry: Any) -> Optional[str]:
    """
    Pick the image for an entry.

    Tries, in order: an enclosure URL, media content or thumbnail, the
    entry image, then the first <img src> inside the HTML body.

    Args:
        entry: feedparser entry

    Returns:
        Image URL or None
    """
    enclosure = _first_url(entry.get("enclosures"), "href", "url")
    if enclosure:
        return enclosure

    media = _first_url(entry.get("media_content"), "url") or _first_url(entry.get("media_thumbnail"), "url")
    if media:
        return media

    image = entry.get("image")
    if isinstance(image, dict) and (image.get("href") or image.get("url")):
        return image.get("href") or image.get("url")

    for body in _html_bodies(entry):
        match = _IMG_SRC_RE.search(body)
        if match:
            return match.group(1)
    return None


def _text_snippet(value: Optional[str]) -> Optional[str]:
    """Strip markup from an HTML fragment."""
    if not value:
        return None
    text = _WS_RE.sub(" ", html.unescape(_TAG_RE.sub(" ", value))).strip()
    return text or None


def _published_at(entry: Any) -> Optional[datetime]:
    # feedparser normalizes dates to UTC struct_time
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return datetime(*parsed[:6], tzinfo=timezone.utc)


def normalize_entry(entry: Any, source: str) -> NewsRecord:
    """
    Convert one feed entry.

    Args:
        entry: feedparser entry
        source: Display name of the feed

    Returns:
        NewsRecord
    """
    url = entry.get("link") or None
    title = entry.get("title") or None
    return NewsRecord(
        id=url or f"{source}:{entry.get('id') or title}",
        url=url,
        title=title,
        image=extract_image(entry),
        source=source,
        published_at=_published_at(entry),
        summary=_text_snippet(entry.get("summary")),
    )


def dedupe_key(record: NewsRecord) -> str:
    return record.url or record.id


def merge_news(records: Iterable[NewsRecord], limit: int = NEWS_LIMIT) -> List[NewsRecord]:
    """
    Deduplicate, sort newest first and truncate.

    The first record seen for a URL wins. Records without a timestamp sort
    last and keep their relative order.

    Args:
        records: Records from all feeds, in feed order
        limit: Maximum number of records to return

    Returns:
        Merged list of NewsRecord
    """
    seen = set()
    unique = []
    for record in records:
        key = dedupe_key(record)
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)

    unique.sort(key=lambda r: r.published_at or _EPOCH, reverse=True)
    return unique[:limit]
