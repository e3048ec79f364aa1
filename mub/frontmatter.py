"""
Front matter parsing.

A content file starts with a metadata block fenced by a delimiter line
(``---`` by default), followed by the body::

    ---
    title: Hello
    date: 2024-01-01
    ---
    # Hello

The block is either line-oriented ``key: value`` pairs or, when the site is
configured for it, a YAML mapping.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

import yaml

from .errors import FrontMatterIncomplete, FrontMatterMalformed, MarkdownParseFailed

DEFAULT_DELIMITER = '---'
REQUIRED_KEYS = ('title', 'date')
OPTIONAL_KEYS = ('name', 'template', 'publish', 'bare')
DATE_FORMATS = ['%Y-%m-%dT%H:%M:%S', '%Y-%m-%d', '%b %d, %Y']

TRUE_VALUES = {'true', 'yes', 'on', '1'}
FALSE_VALUES = {'false', 'no', 'off', '0', ''}


def parse_date(value):
    """Parse a front matter date string, returning None if no format matches."""
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def _parse_flag(key, value, path):
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise FrontMatterMalformed(f"'{key}' must be true or false", path, line=f"{key}: {value}")


@dataclass
class Metadata:
    """Front matter of one content item."""
    title: str
    date: str
    name: Optional[str] = None
    template: Optional[str] = None
    publish: Optional[bool] = None
    bare: Optional[bool] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def published(self) -> bool:
        return bool(self.publish)

    @property
    def is_bare(self) -> bool:
        return bool(self.bare)

    @property
    def parsed_date(self) -> datetime:
        return parse_date(self.date) or datetime.min

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any], path=None) -> 'Metadata':
        """Build metadata from a parsed mapping, validating the required keys."""
        for key in REQUIRED_KEYS + OPTIONAL_KEYS:
            value = mapping.get(key)
            if value is not None and not isinstance(value, str):
                raise FrontMatterMalformed(f"'{key}' must be a single value", path, line=f"{key}: {value!r}")

        missing = [key for key in REQUIRED_KEYS if not str(mapping.get(key) or '').strip()]
        if missing:
            raise FrontMatterIncomplete(
                f"missing required front matter key(s): {', '.join(missing)}",
                path,
                missing=missing,
            )

        date_value = str(mapping['date'])
        if parse_date(date_value) is None:
            raise FrontMatterMalformed("unrecognized date format", path, line=f"date: {date_value}")

        extra = {key: value for key, value in mapping.items()
                 if key not in REQUIRED_KEYS and key not in OPTIONAL_KEYS}
        return cls(
            title=str(mapping['title']),
            date=date_value,
            name=mapping.get('name'),
            template=mapping.get('template') or None,
            publish=_parse_flag('publish', mapping.get('publish'), path),
            bare=_parse_flag('bare', mapping.get('bare'), path),
            extra=extra,
        )

    def as_dict(self) -> Dict[str, Any]:
        """Flatten back into a single mapping, as written in the front matter."""
        result = {'title': self.title, 'date': self.date}
        if self.name is not None:
            result['name'] = self.name
        if self.template is not None:
            result['template'] = self.template
        if self.publish is not None:
            result['publish'] = 'true' if self.publish else 'false'
        if self.bare is not None:
            result['bare'] = 'true' if self.bare else 'false'
        result.update(self.extra)
        return result


def split_front_matter(content: str, delimiter: str = DEFAULT_DELIMITER, path=None) -> Tuple[str, str, int]:
    """
    Split raw file content into its front matter block and body.

    Returns:
        Tuple of (block, body, lineno) where lineno is the 1-based line number
        of the first line inside the block.
    """
    lines = content.splitlines(keepends=True)
    start = None
    for index, line in enumerate(lines):
        stripped = line.strip()
        if stripped == delimiter:
            start = index
            break
        if stripped:
            break

    if start is None:
        raise FrontMatterIncomplete(
            f"no front matter block found (expected a '{delimiter}' line)",
            path,
            missing=REQUIRED_KEYS,
        )

    for end in range(start + 1, len(lines)):
        if lines[end].strip() == delimiter:
            block = ''.join(lines[start + 1:end])
            body = ''.join(lines[end + 1:])
            return block, body, start + 2

    raise MarkdownParseFailed(f"unterminated front matter block opened on line {start + 1}", path)


def parse_lines(block: str, path=None, first_lineno: int = 1) -> Dict[str, str]:
    """Parse line-oriented ``key: value`` pairs."""
    mapping = {}
    for offset, line in enumerate(block.splitlines()):
        stripped = line.strip()
        if not stripped or stripped.startswith('#'):
            continue
        key, separator, value = stripped.partition(':')
        if not separator:
            raise FrontMatterMalformed("expected 'key: value'", path, line=stripped, lineno=first_lineno + offset)
        key = key.strip()
        if not key:
            raise FrontMatterMalformed("empty key", path, line=stripped, lineno=first_lineno + offset)
        mapping[key] = value.strip()
    return mapping


def _normalize_yaml_value(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if value is None:
        return ''
    if isinstance(value, (int, float, str)):
        return str(value)
    return value


def parse_yaml(block: str, path=None) -> Dict[str, Any]:
    """Parse a YAML mapping, normalizing scalar values to strings."""
    try:
        loaded = yaml.safe_load(block)
    except yaml.YAMLError as e:
        raise FrontMatterMalformed(f"invalid YAML front matter: {e}", path)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise FrontMatterMalformed("YAML front matter must be a mapping", path)
    return {str(key): _normalize_yaml_value(value) for key, value in loaded.items()}


def parse_front_matter(content: str, delimiter: str = DEFAULT_DELIMITER, style: str = 'lines',
                       path=None) -> Tuple[Metadata, str]:
    """
    Parse a content file into its metadata and body.

    Args:
        content: Raw file content
        delimiter: Front matter fence line
        style: 'lines' for ``key: value`` pairs, 'yaml' for a YAML mapping
        path: Source path, used in error messages

    Returns:
        Tuple of (Metadata, body)
    """
    block, body, first_lineno = split_front_matter(content, delimiter, path)
    if style == 'yaml':
        mapping = parse_yaml(block, path)
    else:
        mapping = parse_lines(block, path, first_lineno)
    return Metadata.from_mapping(mapping, path), body


def dump_front_matter(mapping: Dict[str, Any], body: str = '', delimiter: str = DEFAULT_DELIMITER) -> str:
    """Serialize a flat mapping into a line-oriented front matter block plus body."""
    lines = [delimiter]
    for key, value in mapping.items():
        lines.append(f"{key}: {value}")
    lines.append(delimiter)
    return '\n'.join(lines) + '\n' + body
