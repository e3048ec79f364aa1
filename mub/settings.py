#!/usr/bin/env python3
"""
Settings loader for mub.
Supports configuration from a JSON (.json) or YAML (.yml, .yaml) file.
"""

import copy
import json
import os
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError


class SiteSettings:
    """Load and manage mub configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'input': 'content',
        'output': 'output',
        'templates': 'templates',
        'content_dirs': ['posts', 'projects'],
        'include': 'include',
        'extra_pages': [],
        'search_index': True,
        'site': {},
        'strict': True,
        'workers': None,
        'parallel_threshold': 12,
        'front_matter': 'lines',
        'delimiter': '---',
        'project_file': 'post.html',
        'image_extensions': ['.jpg', '.jpeg', '.png', '.gif', '.webp'],
        'post_subdir': 'posts',
        'photo_subdir': 'photos',
        'minify': False,
        'log_dir': None,
    }

    PATH_KEYS = ('input', 'output', 'templates', 'include', 'log_dir')
    FRONT_MATTER_STYLES = ('lines', 'yaml')

    def __init__(self, config_path: str = 'config.json'):
        """
        Initialize settings loader.

        Args:
            config_path: Path to the configuration file.
        """
        self.config_path = config_path
        self.config_dir = os.path.dirname(os.path.abspath(config_path))
        self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from the configuration file.

        Returns:
            Dictionary of configuration settings, merged over the defaults
        """
        loaded_settings = self._load_config_file(self.config_path)
        if not isinstance(loaded_settings, dict):
            raise ConfigError("configuration must be a mapping", self.config_path)
        self.settings.update(loaded_settings)
        return self.settings.copy()

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    return yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    return json.load(f) or {}
                else:
                    raise ConfigError(f"unsupported config file format: {file_ext}", config_path)
        except FileNotFoundError:
            raise ConfigError("configuration file not found", config_path)
        except PermissionError:
            raise ConfigError("permission denied reading configuration file", config_path)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in configuration file: {e}", config_path)
        except json.JSONDecodeError as e:
            raise ConfigError(f"invalid JSON in configuration file: {e}", config_path)
        except (IOError, OSError) as e:
            raise ConfigError(f"error reading configuration file: {e}", config_path)

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged configuration dictionary
        """
        merged = self.settings.copy()
        for key, value in args_dict.items():
            if value is not None:
                merged[key] = value
        return merged

    def resolve_paths(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        """Make relative paths relative to the configuration file's directory."""
        resolved = settings.copy()
        for key in self.PATH_KEYS:
            value = resolved.get(key)
            if value:
                value = os.path.expanduser(str(value))
                if not os.path.isabs(value):
                    value = os.path.join(self.config_dir, value)
                resolved[key] = os.path.normpath(value)
        return resolved

    def validate(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        """Check the settings mub cannot run without, raising ConfigError."""
        for key in ('input', 'output', 'templates'):
            if not settings.get(key):
                raise ConfigError(f"'{key}' must be set", self.config_path)
        if settings['front_matter'] not in self.FRONT_MATTER_STYLES:
            raise ConfigError(
                f"'front_matter' must be one of {', '.join(self.FRONT_MATTER_STYLES)}", self.config_path)
        if not isinstance(settings['site'], dict):
            raise ConfigError("'site' must be a mapping", self.config_path)
        for key in ('content_dirs', 'extra_pages', 'image_extensions'):
            if not isinstance(settings[key], list):
                raise ConfigError(f"'{key}' must be a list", self.config_path)
        workers = settings.get('workers')
        if workers is not None and (not isinstance(workers, int) or workers < 1):
            raise ConfigError("'workers' must be a positive integer", self.config_path)

        output = os.path.abspath(settings['output'])
        for key in ('input', 'templates'):
            other = os.path.abspath(settings[key])
            if other == output or other.startswith(output + os.sep):
                raise ConfigError(f"'output' must not contain '{key}', it is deleted on every build",
                                  self.config_path)
        return settings


def load_settings(config_path: str, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Load, merge, resolve and validate settings in one call."""
    loader = SiteSettings(config_path)
    loader.load_settings()
    merged = loader.merge_with_args(overrides or {})
    return loader.validate(loader.resolve_paths(merged))
