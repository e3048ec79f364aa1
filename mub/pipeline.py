"""
Ingestion pipeline: fan content entries out to workers, fan the results in.

Each immediate child of a content directory is one unit of work. Units are
split into contiguous batches, one per worker. Every worker folds its batch
into a partial ``(items, errors)`` result, and the parent concatenates those
partial results into a single ContentCollection.

The failure policy is decided once per run:

* strict (default): the first failing unit aborts the run with
  PipelineAborted.
* lenient: failing units are skipped and returned as ItemError records next
  to the collection of everything that did load.
"""

import logging
import os
from collections import Counter
from concurrent.futures import ProcessPoolExecutor, as_completed
from datetime import datetime
from pathlib import Path
from typing import List, Tuple

from .content import ContentCollection, ContentLoader
from .errors import ContentIOError, ItemError, MubError, PipelineAborted

# Multiprocessing only pays off above a handful of files.
DEFAULT_PARALLEL_THRESHOLD = 12

# Per-process ContentLoader, set up by the pool initializer.
content_loader = None


def initializer(loader_options):
    """Initialize a ContentLoader in each worker process."""
    global content_loader
    content_loader = ContentLoader(**loader_options)


def load_batch(entries, strict):
    """Process a batch using the worker's ContentLoader."""
    return fold_batch(content_loader, entries, strict)


def fold_batch(loader, entries, strict) -> Tuple[list, List[ItemError]]:
    """Load every entry of a batch, collecting items and attributed errors."""
    items = []
    errors = []
    for entry in entries:
        try:
            items.append(loader.load(entry))
        except MubError as e:
            errors.append(ItemError.from_exception(entry, e))
            if strict:
                break
    return items, errors


def partition(entries, count):
    """Split entries into at most ``count`` contiguous, non-empty batches."""
    if not entries:
        return []
    count = max(1, min(count, len(entries)))
    size = -(-len(entries) // count)
    return [entries[i:i + size] for i in range(0, len(entries), size)]


class Pipeline:
    """Walk content directories and build the run's ContentCollection."""

    def __init__(self, loader_options, strict=True, workers=None, parallel_threshold=DEFAULT_PARALLEL_THRESHOLD):
        self.loader_options = dict(loader_options)
        self.strict = strict
        self.workers = workers or os.cpu_count() or 1
        self.parallel_threshold = parallel_threshold
        self.logger = logging.getLogger('mub.pipeline')

    def list_entries(self, content_roots) -> List[Path]:
        """List the immediate, non-hidden children of every content root."""
        if isinstance(content_roots, (str, os.PathLike)):
            content_roots = [content_roots]

        entries = []
        for root in content_roots:
            root = Path(root)
            if not root.exists():
                self.logger.warning(f"Content directory not found, skipping: {root}")
                continue
            try:
                children = sorted(root.iterdir(), key=lambda p: p.name)
            except OSError as e:
                raise ContentIOError(f"unable to read content directory: {e}", root) from e
            entries.extend(child for child in children if not child.name.startswith('.'))
        return entries

    def run(self, content_roots) -> Tuple[ContentCollection, List[ItemError]]:
        """
        Load all content under the given roots.

        Returns:
            Tuple of (ContentCollection, list of ItemError). The error list is
            always empty in strict mode, since any error raises instead.
        """
        generated_at = datetime.now()
        entries = self.list_entries(content_roots)
        if not entries:
            self.logger.warning("No content found to process.")
            return ContentCollection(generated_at=generated_at), []

        if len(entries) >= self.parallel_threshold and self.workers > 1:
            self.logger.info(f"Using multiprocessing for {len(entries)} entries with {self.workers} workers")
            results = self._run_with_multiprocessing(partition(entries, self.workers))
        else:
            self.logger.info(f"Using single-process loading for {len(entries)} entries")
            results = [self._run_in_process(entries)]

        errors = [error for _, batch_errors in results for error in batch_errors]
        if errors and self.strict:
            raise PipelineAborted("content loading failed", errors[0].path, error=errors[0])

        collection = ContentCollection.merge((items for items, _ in results), generated_at=generated_at)
        self.warn_on_collisions(collection)
        self.logger.info(f"Loaded {len(collection)} items ({len(errors)} skipped)")
        return collection, errors

    def _run_in_process(self, entries):
        return fold_batch(ContentLoader(**self.loader_options), entries, self.strict)

    def _run_with_multiprocessing(self, batches):
        results = [None] * len(batches)
        with ProcessPoolExecutor(
            max_workers=len(batches),
            initializer=initializer,
            initargs=(self.loader_options,)
        ) as executor:
            futures = {
                executor.submit(load_batch, batch, self.strict): index
                for index, batch in enumerate(batches)
            }
            for future in as_completed(futures):
                items, errors = future.result()
                results[futures[future]] = (items, errors)
                if errors and self.strict:
                    for pending in futures:
                        pending.cancel()
                    break
        # Batches finish in any order; keep them in input order.
        return [result for result in results if result is not None]

    def warn_on_collisions(self, collection):
        """Log every output URL claimed by more than one item; the last write wins."""
        counts = Counter(item.url for item in collection)
        for url, count in counts.items():
            if count > 1:
                sources = [str(item.location.source_path) for item in collection if item.url == url]
                self.logger.warning(f"{count} items write to {url}, last write wins: {', '.join(sources)}")
