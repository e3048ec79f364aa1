"""
Search index generation.

The index is a JSON array with one record per published item::

    [{"path": "posts/hello.html", "title": "Hi", "date": "2024-01-01", "text": "Hi World "}]

It is built all at once: if any published item cannot be projected, no index
is written at all.
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from .errors import SearchProjectionFailed
from .renderer import write_output

SEARCH_INDEX_FILENAME = 'search-index.json'

logger = logging.getLogger('mub.search')


@dataclass(frozen=True)
class SearchRecord:
    path: str
    title: str
    date: str
    text: str

    @classmethod
    def from_item(cls, item):
        """Project a content item, failing if it lacks a title or date."""
        metadata = item.metadata
        missing = [key for key in ('title', 'date') if not (getattr(metadata, key, None) or '').strip()]
        if missing:
            raise SearchProjectionFailed(
                f"cannot index item without {', '.join(missing)}",
                item.location.source_path,
            )
        return cls(path=item.url, title=metadata.title, date=metadata.date, text=item.search_text)


def build_records(collection):
    """Project every published item, ordered by path."""
    published = sorted((item for item in collection if item.published), key=lambda item: item.url)
    return [SearchRecord.from_item(item) for item in published]


def build_index(collection) -> bytes:
    """Serialize the search records of a collection as a JSON document."""
    records = build_records(collection)
    return json.dumps([asdict(record) for record in records], ensure_ascii=False).encode('utf-8')


def write_index(collection, output_dir):
    """Build the index and write it to ``search-index.json`` under output_dir."""
    data = build_index(collection)
    output_path = Path(output_dir) / SEARCH_INDEX_FILENAME
    write_output(output_path, data.decode('utf-8'), output_path)
    logger.info(f"Generating search index ({output_path})")
    return output_path
