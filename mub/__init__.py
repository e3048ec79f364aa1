"""
mub - a small static site generator.

mub reads posts and photo projects from a content directory, converts
Markdown bodies to HTML, renders everything through Jinja2 templates and
writes a JSON search index alongside the generated site.
"""

__version__ = "0.3.0"

from .content import ContentCollection, ContentItem, ContentLoader
from .core import Site
from .pipeline import Pipeline

__all__ = ['Site', 'Pipeline', 'ContentLoader', 'ContentItem', 'ContentCollection']
