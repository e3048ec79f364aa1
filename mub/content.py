"""
Content model and classification.

A unit of content is one immediate child of a content directory: either a
standalone post file (``.md`` or ``.html``) or a photo project directory
holding a canonical content file plus its images.
"""

import enum
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from PIL import Image

from .converter import BodyConverter, SourceKind
from .errors import ContentIOError, ProjectContentMissing, UnsupportedExtension
from .frontmatter import DEFAULT_DELIMITER, Metadata, parse_front_matter

EXTENSION_KINDS = {
    '.md': SourceKind.MARKDOWN,
    '.html': SourceKind.HTML,
}
IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.gif', '.webp')
DEFAULT_PROJECT_FILE = 'post.html'
DEFAULT_POST_SUBDIR = 'posts'
DEFAULT_PHOTO_SUBDIR = 'photos'


class ContentKind(enum.Enum):
    POST = 'post'
    PROJECT = 'project'

    @property
    def default_template(self):
        return 'post.html' if self is ContentKind.POST else 'project.html'


@dataclass(frozen=True)
class Location:
    """Where an item comes from and where it is written."""
    source_path: Path
    destination_path: Path
    output_url: str
    filename: str


@dataclass(frozen=True)
class ProjectImage:
    """An image belonging to a photo project."""
    filename: str
    source_path: Path
    destination_path: Path
    output_url: str
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class Classification:
    """Result of classifying a directory entry, before it is read."""
    kind: ContentKind
    source_kind: SourceKind
    content_path: Path
    location: Location
    images: Tuple[ProjectImage, ...] = ()


@dataclass
class ContentItem:
    """One parsed and converted piece of content."""
    metadata: Metadata
    raw: str
    html: str
    text: Optional[str]
    location: Location
    kind: ContentKind
    images: Tuple[ProjectImage, ...] = ()

    @property
    def title(self):
        return self.metadata.title

    @property
    def date(self):
        return self.metadata.date

    @property
    def published(self):
        return self.metadata.published

    @property
    def name(self):
        return self.metadata.name or Path(self.location.output_url).stem

    @property
    def url(self):
        return self.location.output_url

    @property
    def template(self):
        return self.metadata.template or self.kind.default_template

    @property
    def search_text(self):
        return self.text if self.text is not None else self.raw


@dataclass(frozen=True)
class ContentCollection:
    """Every item parsed during one run, plus the time the run started."""
    generated_at: datetime
    items: Tuple[ContentItem, ...] = field(default_factory=tuple)

    @classmethod
    def merge(cls, batches: Iterable[Iterable[ContentItem]], generated_at: Optional[datetime] = None):
        """Concatenate partial batches into a single collection."""
        items = []
        for batch in batches:
            items.extend(batch)
        return cls(generated_at=generated_at or datetime.now(), items=tuple(items))

    def __len__(self):
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    @property
    def published(self) -> List[ContentItem]:
        return self.sorted_items([item for item in self.items if item.published])

    @property
    def posts(self) -> List[ContentItem]:
        return self.sorted_items([item for item in self.items if item.kind is ContentKind.POST])

    @property
    def projects(self) -> List[ContentItem]:
        return self.sorted_items([item for item in self.items if item.kind is ContentKind.PROJECT])

    def sorted_items(self, items=None, reverse=True) -> List[ContentItem]:
        """Sort by date (newest first by default), ties broken by output URL."""
        items = list(self.items if items is None else items)
        items.sort(key=lambda item: item.url)
        items.sort(key=lambda item: item.metadata.parsed_date, reverse=reverse)
        return items


def read_image_size(path):
    """Return (width, height) of an image, or (None, None) if Pillow can't open it."""
    try:
        with Image.open(path) as img:
            return img.size
    except OSError as e:
        logging.getLogger('mub.content').warning(f"Could not read image dimensions of {path}: {e}")
        return None, None


class ContentLoader:
    """Classify, read, parse and convert content entries."""

    def __init__(self, output_dir, converter=None, delimiter=DEFAULT_DELIMITER, front_matter='lines',
                 post_subdir=DEFAULT_POST_SUBDIR, photo_subdir=DEFAULT_PHOTO_SUBDIR,
                 project_file=DEFAULT_PROJECT_FILE, image_extensions=IMAGE_EXTENSIONS):
        self.output_dir = Path(output_dir)
        self.converter = converter or BodyConverter()
        self.delimiter = delimiter
        self.front_matter = front_matter
        self.post_subdir = post_subdir
        self.photo_subdir = photo_subdir
        self.project_file = project_file
        self.image_extensions = tuple(ext.lower() for ext in image_extensions)
        self.logger = logging.getLogger('mub.content')

    def _location(self, source_path, output_url):
        return Location(
            source_path=source_path,
            destination_path=self.output_dir / output_url,
            output_url=output_url,
            filename=source_path.name,
        )

    def classify(self, entry) -> Classification:
        """Decide whether an entry is a standalone post or a photo project."""
        entry = Path(entry)
        if entry.is_dir():
            return self._classify_project(entry)

        source_kind = EXTENSION_KINDS.get(entry.suffix.lower())
        if source_kind is None:
            raise UnsupportedExtension(f"unsupported file extension '{entry.suffix}'", entry)
        output_url = f"{self.post_subdir}/{entry.stem}.html"
        return Classification(
            kind=ContentKind.POST,
            source_kind=source_kind,
            content_path=entry,
            location=self._location(entry, output_url),
        )

    def _classify_project(self, directory):
        content_path = directory / self.project_file
        if not content_path.is_file():
            raise ProjectContentMissing(f"photo project has no '{self.project_file}'", directory)
        source_kind = EXTENSION_KINDS.get(content_path.suffix.lower())
        if source_kind is None:
            raise UnsupportedExtension(f"unsupported file extension '{content_path.suffix}'", content_path)

        images = []
        try:
            with os.scandir(directory) as entries:
                for child in entries:
                    if child.name == self.project_file or not child.is_file():
                        continue
                    if os.path.splitext(child.name)[1].lower() not in self.image_extensions:
                        continue
                    output_url = f"{self.photo_subdir}/{directory.name}/{child.name}"
                    width, height = read_image_size(child.path)
                    images.append(ProjectImage(
                        filename=child.name,
                        source_path=Path(child.path),
                        destination_path=self.output_dir / output_url,
                        output_url=output_url,
                        width=width,
                        height=height,
                    ))
        except OSError as e:
            raise ContentIOError(f"unable to list photo project: {e}", directory) from e

        output_url = f"{self.photo_subdir}/{directory.name}.html"
        return Classification(
            kind=ContentKind.PROJECT,
            source_kind=source_kind,
            content_path=content_path,
            location=self._location(directory, output_url),
            images=tuple(images),
        )

    def read(self, path):
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except (IOError, OSError, UnicodeDecodeError) as e:
            raise ContentIOError(f"unable to read content: {e}", path) from e

    def load(self, entry) -> ContentItem:
        """Turn one directory entry into a ContentItem."""
        classification = self.classify(entry)
        content = self.read(classification.content_path)
        metadata, body = parse_front_matter(
            content,
            delimiter=self.delimiter,
            style=self.front_matter,
            path=classification.content_path,
        )
        html, text = self.converter.convert(body, classification.source_kind, path=classification.content_path)
        self.logger.debug(f"Loaded {classification.kind.value} {entry} -> {classification.location.output_url}")
        return ContentItem(
            metadata=metadata,
            raw=body,
            html=html,
            text=text,
            location=classification.location,
            kind=classification.kind,
            images=classification.images,
        )
