"""
Feed ingestion mapper.

Turns the items of a parsed feed into documents by applying a source's
field mappings, then bulk-inserts them with duplicate skipping. The
natural key of an ingested document is the mapped value of the
configured dedup field; a key already stored for the same source is
never inserted twice, so repeated ticks over an unchanged feed insert
nothing.
"""

import logging
from typing import Any

from bs4 import BeautifulSoup

from src.feeds.config import FeedsConfig
from src.feeds.schemas import FeedSource, FieldMapping, IngestionReport, ParsedFeed
from src.observability.metrics import get_metrics
from src.posts.repository import PostsRepository
from src.posts.schemas import Block, BlockKind, Document, PostStatus

logger = logging.getLogger(__name__)

_MISSING = object()


def lookup_field(item: dict[str, Any], root: dict[str, Any], path: str) -> Any:
    """
    Resolve ``path`` against a feed item (or the feed root with ``feed.``).

    Plain keys win over dotted traversal, so keys that contain dots or
    colons (``media:thumbnail``) still resolve.

    >>> lookup_field({"links": [{"href": "x"}]}, {}, "links.0.href")
    'x'
    >>> lookup_field({}, {"title": "T"}, "feed.title")
    'T'
    """
    source: Any = item
    if path.startswith("feed."):
        source, path = root, path[len("feed."):]
    elif path.startswith("item."):
        path = path[len("item."):]

    if isinstance(source, dict) and path in source:
        return source[path]

    current = source
    for part in path.split("."):
        if isinstance(current, dict):
            current = current.get(part, _MISSING)
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return None
        if current is _MISSING:
            return None
    return current


def as_text(value: Any) -> str | None:
    """Flatten a mapped value to text; feedparser content lists yield their first value."""
    if value is None:
        return None
    if isinstance(value, list):
        if not value:
            return None
        return as_text(value[0])
    if isinstance(value, dict):
        for key in ("value", "href", "url", "name"):
            if key in value:
                return as_text(value[key])
        return None
    text = str(value).strip()
    return text or None


def strip_html(text: str | None) -> str | None:
    if text is None:
        return None
    stripped = BeautifulSoup(text, "html.parser").get_text(" ", strip=True)
    return stripped or None


def map_item(
    mappings: list[FieldMapping],
    item: dict[str, Any],
    root: dict[str, Any],
) -> dict[str, str]:
    """Apply mappings to one item; absent external fields are left out."""
    mapped: dict[str, str] = {}
    for mapping in mappings:
        value = as_text(lookup_field(item, root, mapping.external_field))
        if value is not None:
            mapped[mapping.internal_field] = value
    return mapped


class FeedIngestionMapper:
    """Map a parsed feed to documents and store the new ones."""

    def __init__(
        self,
        posts: PostsRepository,
        config: FeedsConfig | None = None,
    ) -> None:
        self._posts = posts
        self._config = config or FeedsConfig()
        self._metrics = get_metrics()

    def build_documents(
        self,
        source: FeedSource,
        feed: ParsedFeed,
        report: IngestionReport,
    ) -> list[Document]:
        """Documents for every mappable item, collapsing in-batch duplicates."""
        docs: list[Document] = []
        seen: set[str] = set()
        status = PostStatus(self._config.ingested_status)

        for item in feed.items[: self._config.max_items_per_tick]:
            mapped = map_item(source.mappings, item, feed.root_fields)
            title = strip_html(mapped.get("title"))
            natural_key = mapped.get(self._config.dedup_key)
            if self._config.dedup_key == "title":
                natural_key = title

            if not title or not natural_key:
                report.unmapped += 1
                continue
            if natural_key in seen:
                report.duplicates += 1
                continue
            seen.add(natural_key)

            doc = Document(
                title=title,
                creator_id=source.creator_id,
                short_description=strip_html(mapped.get("short_description")) or "",
                status=status,
                feed_source_id=source.id,
                natural_key=natural_key,
            )
            content = mapped.get("content")
            if content:
                doc.blocks = [
                    Block(document_id=doc.id, order=1, kind=BlockKind.RICH_TEXT, content=content)
                ]
            docs.append(doc)
        return docs

    async def ingest(self, source: FeedSource, feed: ParsedFeed) -> IngestionReport:
        """Map and insert ``feed``; returns the per-tick counts."""
        report = IngestionReport(source_id=source.id, fetched=len(feed.items))
        docs = self.build_documents(source, feed, report)

        if docs:
            report.inserted = await self._posts.insert_ingested(docs)
            report.duplicates += len(docs) - report.inserted

        self._metrics.record_feed_documents(report.inserted, report.duplicates, report.unmapped)
        logger.info(
            f"Feed source {source.id}: {report.inserted} inserted, "
            f"{report.duplicates} duplicates, {report.unmapped} unmapped "
            f"of {report.fetched} items"
        )
        return report
