"""
Body conversion: markdown to HTML, with plain text extracted for search.
"""

import enum
import logging

import mistune

from .errors import MarkdownParseFailed

MARKDOWN_PLUGINS = ['table', 'task_lists', 'strikethrough']


class SourceKind(enum.Enum):
    MARKDOWN = 'markdown'
    HTML = 'html'


class TextCollectingRenderer(mistune.HTMLRenderer):
    """HTML renderer that records every text run it renders, in document order."""

    def __init__(self):
        super().__init__(escape=False)
        self.text_runs = []

    def text(self, text):
        self.text_runs.append(text)
        return super().text(text)

    def block_code(self, code, info=None):
        escaped_code = mistune.escape(code)
        return '<pre style="white-space: pre-wrap;"><code>{}</code></pre>'.format(escaped_code)

    def collected_text(self):
        return ''.join(run + ' ' for run in self.text_runs)


class BodyConverter:
    """Turn a content body into HTML, plus searchable text for markdown sources."""

    def __init__(self, plugins=None):
        self.plugins = list(MARKDOWN_PLUGINS if plugins is None else plugins)
        self.logger = logging.getLogger('mub.converter')

    def create_markdown_parser(self):
        """Create a Mistune parser bound to a fresh text-collecting renderer."""
        renderer = TextCollectingRenderer()
        return mistune.create_markdown(renderer=renderer, plugins=self.plugins), renderer

    def convert(self, body, source_kind, path=None):
        """
        Convert a body to HTML.

        HTML sources pass through untouched with no extracted text. Markdown
        sources are parsed and rendered once; the text runs seen by the
        renderer during that pass become the extracted text.

        Returns:
            Tuple of (html, text or None)
        """
        if source_kind is SourceKind.HTML:
            return body, None

        markdown, renderer = self.create_markdown_parser()
        try:
            html = markdown(body)
        except Exception as e:
            raise MarkdownParseFailed(f"markdown conversion failed: {e}", path) from e
        self.logger.debug(f"Converted markdown body of {path or '<string>'} ({len(renderer.text_runs)} text runs)")
        return html, renderer.collected_text()
