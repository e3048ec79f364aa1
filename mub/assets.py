"""
Copying of auxiliary files from the include directory into the output tree.
"""

import logging
import os
import shutil

import csscompressor
import rjsmin

from .errors import ContentIOError

logger = logging.getLogger('mub.assets')


def copy_include_tree(include_dir, output_dir, minify=False):
    """
    Copy every file under include_dir into output_dir, keeping relative paths.

    Args:
        include_dir: Source tree; nothing happens if it doesn't exist
        output_dir: Output root to copy into
        minify: Also write .min.css / .min.js siblings for stylesheets and scripts

    Returns:
        Number of files copied
    """
    if not include_dir or not os.path.isdir(include_dir):
        return 0

    copied = 0
    for root, _dirs, files in os.walk(include_dir):
        relative_root = os.path.relpath(root, include_dir)
        target_root = os.path.normpath(os.path.join(output_dir, relative_root))
        for file in files:
            src_path = os.path.join(root, file)
            dest_path = os.path.join(target_root, file)
            try:
                os.makedirs(target_root, exist_ok=True)
                shutil.copy2(src_path, dest_path)
            except (IOError, OSError, PermissionError) as e:
                raise ContentIOError(f"failed to copy include file: {e}", src_path) from e
            copied += 1
            if minify:
                minify_file(dest_path)

    logger.info(f"Copied {copied} include files from {include_dir}")
    return copied


def minify_file(path):
    """Write a minified sibling for a .css or .js file; returns its path or None."""
    if path.endswith('.css') and not path.endswith('.min.css'):
        minifier, suffix = csscompressor.compress, '.min.css'
        stem = path[:-len('.css')]
    elif path.endswith('.js') and not path.endswith('.min.js'):
        minifier, suffix = rjsmin.jsmin, '.min.js'
        stem = path[:-len('.js')]
    else:
        return None

    minified_path = stem + suffix
    try:
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
        with open(minified_path, 'w', encoding='utf-8') as f:
            f.write(minifier(content))
    except (IOError, OSError, PermissionError) as e:
        raise ContentIOError(f"failed to minify: {e}", path) from e
    logger.debug(f"Minified {os.path.basename(path)}")
    return minified_path
