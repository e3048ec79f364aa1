import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from .assets import copy_include_tree
from .content import ContentCollection
from .errors import ConfigError, ItemError
from .pipeline import Pipeline
from .renderer import TemplateRenderer
from .search import write_index


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages, plus warnings and errors, on the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "Site build completed in",
            "Total items generated:",
            "Total items skipped:",
            "Building page",
            "Generating search index",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


@dataclass
class BuildResult:
    collection: ContentCollection
    errors: List[ItemError] = field(default_factory=list)
    items_generated: int = 0
    elapsed: float = 0.0


class Site:
    """One build of a site: load content, render it, index it."""

    def __init__(self, settings, verbose=False):
        self.settings = settings
        self.input_dir = settings['input']
        self.output_dir = settings['output']
        self.templates_dir = settings['templates']
        self.strict = settings['strict']
        self.verbose = verbose

        if not os.path.isdir(self.templates_dir):
            raise ConfigError(f"Templates directory not found: {self.templates_dir}")

        self.setup_logging()

        self.pipeline = Pipeline(
            self.loader_options(),
            strict=self.strict,
            workers=settings['workers'],
            parallel_threshold=settings['parallel_threshold'],
        )
        self.renderer = TemplateRenderer(
            self.templates_dir,
            self.output_dir,
            site=settings['site'],
            config=settings,
            strict=self.strict,
            workers=settings['workers'],
            extra_pages=settings['extra_pages'],
            search_page=settings['search_index'],
        )

    def setup_logging(self):
        """Set up logging configuration."""
        self.logger = logging.getLogger('mub')
        self.logger.setLevel(logging.DEBUG if self.verbose else logging.INFO)

        if not self.logger.handlers:
            console_handler = logging.StreamHandler()
            if self.verbose:
                console_handler.setLevel(logging.DEBUG)
            else:
                console_handler.setLevel(logging.INFO)
                console_handler.addFilter(InfoFilter())
            console_handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(console_handler)

            log_dir = self.settings.get('log_dir')
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
                log_filename = datetime.now().strftime('mub_%Y-%m-%d_%H-%M-%S.log')
                file_handler = logging.FileHandler(os.path.join(log_dir, log_filename))
                file_handler.setLevel(logging.DEBUG)
                file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
                self.logger.addHandler(file_handler)
                self.logger.setLevel(logging.DEBUG)

    def loader_options(self):
        """Keyword arguments for the ContentLoader each worker builds."""
        return {
            'output_dir': self.output_dir,
            'delimiter': self.settings['delimiter'],
            'front_matter': self.settings['front_matter'],
            'post_subdir': self.settings['post_subdir'],
            'photo_subdir': self.settings['photo_subdir'],
            'project_file': self.settings['project_file'],
            'image_extensions': tuple(self.settings['image_extensions']),
        }

    def content_roots(self):
        return [os.path.join(self.input_dir, name) for name in self.settings['content_dirs']]

    def build(self) -> BuildResult:
        """Main build process."""
        start_time = time.time()
        self.logger.debug(f"Starting site build from {self.input_dir}")

        # Load everything before touching the output, so a failed load leaves it alone.
        collection, errors = self.pipeline.run(self.content_roots())

        self.renderer.prepare_output()
        copy_include_tree(self.settings.get('include'), self.output_dir, minify=self.settings['minify'])

        render_errors = self.renderer.render_items(collection)
        errors.extend(render_errors)
        errors.extend(self.renderer.render_pages(collection))

        if self.settings['search_index']:
            write_index(collection, self.output_dir)

        result = BuildResult(
            collection=collection,
            errors=errors,
            items_generated=len(collection) - len(render_errors),
            elapsed=time.time() - start_time,
        )
        self.logger.info(f"Site build completed in {result.elapsed:.6f} seconds.")
        self.logger.info(f"Total items generated: {result.items_generated}")
        if errors:
            self.logger.info(f"Total items skipped: {len(errors)}")
        return result
