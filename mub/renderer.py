"""
Template rendering with Jinja2.
"""

import logging
import os
import shutil
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from types import MappingProxyType

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, select_autoescape
from jinja2 import TemplateNotFound as JinjaTemplateNotFound
from markupsafe import Markup

from .content import ContentKind
from .errors import (ContentIOError, ItemError, MubError, PipelineAborted, TemplateNotFound,
                     TemplateRenderFailed)

INDEX_TEMPLATE = 'index.html'
SEARCH_TEMPLATE = 'search.html'


def write_output(path, text, source=None):
    """Write a rendered page, creating parent directories as needed."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as output_file:
            output_file.write(text)
    except (IOError, OSError, PermissionError) as e:
        raise ContentIOError(f"unable to write {path}: {e}", source or path) from e


class TemplateRenderer:
    """Render items and top-level pages into the output directory."""

    def __init__(self, templates_dir, output_dir, site=None, config=None, strict=True, workers=None,
                 extra_pages=(), search_page=False):
        self.templates_dir = str(templates_dir)
        self.output_dir = Path(output_dir)
        self.site = MappingProxyType(dict(site or {}))
        self.config = MappingProxyType(dict(config or {}))
        self.strict = strict
        self.workers = workers or os.cpu_count() or 1
        self.extra_pages = list(extra_pages)
        self.search_page = search_page
        self.logger = logging.getLogger('mub.renderer')
        self.env = Environment(
            loader=FileSystemLoader(self.templates_dir),
            undefined=StrictUndefined,
            autoescape=select_autoescape(),
        )

    def prepare_output(self):
        """
        Remove the output directory and recreate it empty.

        This is not an atomic swap: anything reading the output tree while a
        build runs can see it half rebuilt.
        """
        try:
            if self.output_dir.exists():
                shutil.rmtree(self.output_dir)
                self.logger.debug(f"Removed previous output at {self.output_dir}")
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ContentIOError(f"unable to prepare output directory: {e}", self.output_dir) from e

    def calculate_relative_path(self, current_output_dir):
        """Calculate relative path from current directory to root."""
        rel_path = os.path.relpath(self.output_dir, current_output_dir)
        if rel_path == '.':
            return ''
        return rel_path + '/'

    def render_template(self, template_name, source, **context):
        """Render a template, translating Jinja2 failures into mub errors."""
        try:
            template = self.env.get_template(template_name)
            return template.render(**context)
        except JinjaTemplateNotFound as e:
            raise TemplateNotFound(f"template not found: {e.name}", source) from e
        except (TemplateError, TypeError, ValueError, ArithmeticError, LookupError) as e:
            raise TemplateRenderFailed(f"error rendering '{template_name}': {e}", source) from e

    def base_context(self, collection):
        return {
            'site': self.site,
            'config': self.config,
            'generated_at': collection.generated_at,
        }

    def item_context(self, item, collection):
        context = self.base_context(collection)
        context.update(
            item=item,
            metadata=item.metadata.as_dict(),
            title=item.title,
            date=item.date,
            name=item.name,
            url=item.url,
            content=Markup(item.html),
            text=item.text,
            images=list(item.images),
            relative_path=self.calculate_relative_path(item.location.destination_path.parent),
        )
        return context

    def page_context(self, collection, output_path):
        context = self.base_context(collection)
        context.update(
            collection=collection,
            items=collection.sorted_items(),
            published=collection.published,
            posts=collection.posts,
            projects=collection.projects,
            relative_path=self.calculate_relative_path(Path(output_path).parent),
        )
        return context

    def copy_images(self, item):
        """Copy a photo project's images, in parallel, into the output tree."""
        if not item.images:
            return

        def copy(image):
            try:
                image.destination_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(image.source_path, image.destination_path)
            except (IOError, OSError, PermissionError) as e:
                raise ContentIOError(f"failed to copy image {image.filename}: {e}", image.source_path) from e
            self.logger.debug(f"Copied image: {image.source_path} -> {image.destination_path}")

        with ThreadPoolExecutor(max_workers=min(len(item.images), self.workers)) as executor:
            for future in [executor.submit(copy, image) for image in item.images]:
                future.result()

    def render_item(self, item, collection):
        """Render one item to its destination path."""
        source = item.location.source_path
        if item.kind is ContentKind.PROJECT:
            self.copy_images(item)

        if item.metadata.is_bare:
            html = item.html
        else:
            html = self.render_template(item.template, source, **self.item_context(item, collection))
        write_output(item.location.destination_path, html, source)
        self.logger.debug(f"Generated HTML: {item.location.destination_path}")
        return item.location.destination_path

    def render_group(self, items, collection):
        """
        Render items sharing one destination, one after another.

        Returns:
            List of ItemError; in strict mode it stops at the first one.
        """
        errors = []
        for item in items:
            try:
                self.render_item(item, collection)
            except MubError as e:
                errors.append(ItemError.from_exception(item.location.source_path, e))
                if self.strict:
                    break
        return errors

    def _collect(self, futures):
        errors = []
        for future in as_completed(futures):
            for error in future.result():
                if self.strict:
                    for pending in futures:
                        pending.cancel()
                    raise PipelineAborted("rendering failed", error.path, error=error)
                self.logger.error(f"Skipping {error.path}: {error}")
                errors.append(error)
        return errors

    def render_items(self, collection):
        """
        Render every item of the collection on a thread pool.

        Items writing the same destination are rendered in collection order
        by a single task, so the last of them wins on every run.

        Returns:
            List of ItemError for items that failed (lenient mode only).
        """
        groups = defaultdict(list)
        for item in collection:
            groups[item.location.destination_path].append(item)

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {executor.submit(self.render_group, items, collection): destination
                       for destination, items in groups.items()}
            errors = self._collect(futures)
        order = {str(item.location.source_path): index for index, item in enumerate(collection)}
        return sorted(errors, key=lambda error: order.get(error.path, len(order)))

    def render_page(self, template_name, collection, output_name=None):
        """Render a top-level page with the whole collection in context."""
        output_path = self.output_dir / (output_name or template_name)
        html = self.render_template(template_name, template_name, **self.page_context(collection, output_path))
        write_output(output_path, html, template_name)
        self.logger.info(f"Building page {output_name or template_name}")
        return output_path

    def page_templates(self):
        names = [INDEX_TEMPLATE]
        if self.search_page:
            names.append(SEARCH_TEMPLATE)
        names.extend(name for name in self.extra_pages if name not in names)
        return names

    def render_pages(self, collection):
        """Render index, search and extra pages, once all items are rendered."""
        errors = []
        for template_name in self.page_templates():
            try:
                self.render_page(template_name, collection)
            except MubError as e:
                error = ItemError.from_exception(template_name, e)
                if self.strict:
                    raise PipelineAborted("rendering failed", error.path, error=error) from e
                self.logger.error(f"Skipping page {template_name}: {error}")
                errors.append(error)
        return errors
