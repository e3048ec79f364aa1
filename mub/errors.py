"""
Exception types raised by the mub build pipeline.

Every error that can be attributed to a single piece of content carries the
path of that content, so a failed build can always point at the offending
file.
"""

from dataclasses import dataclass
from typing import Optional


class MubError(Exception):
    """Base class for all mub errors."""

    def __init__(self, message, path=None):
        super().__init__(message)
        self.message = message
        self.path = str(path) if path is not None else None

    def __str__(self):
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message

    def __reduce__(self):
        # Errors cross process boundaries, keep them rebuildable.
        return (self.__class__, (self.message, self.path))


class ConfigError(MubError):
    """Configuration file missing, unreadable or invalid."""


class ContentIOError(MubError):
    """A content file or directory could not be read, or an output written."""


class FrontMatterMalformed(MubError):
    """The front matter block could not be parsed."""

    def __init__(self, message, path=None, line=None, lineno=None):
        super().__init__(message, path)
        self.line = line
        self.lineno = lineno

    def __str__(self):
        location = self.path or '<string>'
        if self.lineno is not None:
            location = f"{location}:{self.lineno}"
        if self.line is not None:
            return f"{location}: {self.message}: {self.line!r}"
        return f"{location}: {self.message}"

    def __reduce__(self):
        return (self.__class__, (self.message, self.path, self.line, self.lineno))


class FrontMatterIncomplete(MubError):
    """Required front matter keys are missing."""

    def __init__(self, message, path=None, missing=()):
        super().__init__(message, path)
        self.missing = tuple(missing)

    def __reduce__(self):
        return (self.__class__, (self.message, self.path, self.missing))


class UnsupportedExtension(MubError):
    """A content file has an extension mub does not know how to convert."""


class ProjectContentMissing(MubError):
    """A photo project directory has no canonical content file."""


class MarkdownParseFailed(MubError):
    """The body could not be converted to HTML."""


class TemplateNotFound(MubError):
    """A template name could not be resolved."""


class TemplateRenderFailed(MubError):
    """A template failed while rendering, e.g. on an undefined variable."""


class SearchProjectionFailed(MubError):
    """An item could not be projected into a search record."""


@dataclass(frozen=True)
class ItemError:
    """A failure attributed to one unit of work."""
    path: str
    kind: str
    message: str

    @classmethod
    def from_exception(cls, path, exc):
        return cls(path=str(path), kind=type(exc).__name__, message=str(exc))

    def __str__(self):
        return f"{self.kind}: {self.message}"


class PipelineAborted(MubError):
    """Raised under the strict policy when any unit of work fails."""

    def __init__(self, message, path=None, error: Optional[ItemError] = None):
        super().__init__(message, path)
        self.error = error

    def __str__(self):
        if self.error is not None:
            return str(self.error)
        return super().__str__()

    def __reduce__(self):
        return (self.__class__, (self.message, self.path, self.error))
