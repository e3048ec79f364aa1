"""Test configuration and fixtures for mub tests."""

import copy
import json
import os
import shutil
import sys
import tempfile
from pathlib import Path

import pytest
from PIL import Image

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from mub.settings import SiteSettings

HELLO_POST = """---
title: Hi
date: 2024-01-01
publish: true
---
# Hi
World
"""

ABOUT_POST = """---
title: About
date: 2023-06-01
---
<p>About this site.</p>
"""

TRIP_PROJECT = """---
title: Road trip
date: 2023-09-15
publish: true
location: Utah
---
<p>Three days in the desert.</p>
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def image_factory():
    """Return a function writing a small real image to a path."""
    def write_image(path, size=(12, 8), format='JPEG', color='red'):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        img = Image.new('RGB', size, color=color)
        img.save(path, format)
        return path
    return write_image


@pytest.fixture
def mock_content_dir(temp_dir, image_factory):
    """Create a content tree with two posts and one photo project."""
    content_dir = Path(temp_dir) / 'content'
    posts_dir = content_dir / 'posts'
    trip_dir = content_dir / 'projects' / 'trip'

    posts_dir.mkdir(parents=True)
    trip_dir.mkdir(parents=True)

    (posts_dir / 'hello.md').write_text(HELLO_POST)
    (posts_dir / 'about.html').write_text(ABOUT_POST)

    (trip_dir / 'post.html').write_text(TRIP_PROJECT)
    image_factory(trip_dir / 'a.jpg', size=(40, 30))
    image_factory(trip_dir / 'b.jpg', size=(30, 40))

    return str(content_dir)


@pytest.fixture
def mock_templates_dir(temp_dir):
    """Create a templates directory with item and page templates."""
    templates_dir = Path(temp_dir) / 'templates'
    templates_dir.mkdir()

    (templates_dir / 'base.html').write_text("""<!DOCTYPE html>
<html>
<head>
    <title>{% block title %}{{ site.title }}{% endblock %}</title>
</head>
<body>
    {% block content %}{% endblock %}
</body>
</html>""")

    (templates_dir / 'post.html').write_text("""{% extends "base.html" %}
{% block title %}{{ title }} | {{ site.title }}{% endblock %}
{% block content %}
<article>
    <time>{{ date }}</time>
    <div>{{ content|safe }}</div>
    <a href="{{ relative_path }}index.html">Home</a>
</article>
{% endblock %}""")

    (templates_dir / 'project.html').write_text("""{% extends "base.html" %}
{% block title %}{{ title }} | {{ site.title }}{% endblock %}
{% block content %}
<section>
    <div>{{ content|safe }}</div>
    <p>{{ metadata.location }}</p>
    {% for image in images %}
    <img src="{{ relative_path }}{{ image.output_url }}" width="{{ image.width }}" height="{{ image.height }}">
    {% endfor %}
</section>
{% endblock %}""")

    (templates_dir / 'index.html').write_text("""{% extends "base.html" %}
{% block content %}
<ul>
    {% for item in published %}
    <li><a href="{{ relative_path }}{{ item.url }}">{{ item.title }}</a> {{ item.date }}</li>
    {% endfor %}
</ul>
<p>{{ items|length }} items</p>
{% endblock %}""")

    (templates_dir / 'search.html').write_text("""{% extends "base.html" %}
{% block content %}
<input id="search" data-index="{{ relative_path }}search-index.json">
{% endblock %}""")

    return str(templates_dir)


@pytest.fixture
def mock_output_dir(temp_dir):
    """Create a mock output directory."""
    output_dir = Path(temp_dir) / 'output'
    output_dir.mkdir()
    return str(output_dir)


@pytest.fixture
def site_settings(temp_dir, mock_content_dir, mock_templates_dir):
    """Resolved settings for a build inside temp_dir."""
    settings = copy.deepcopy(SiteSettings.DEFAULT_SETTINGS)
    settings.update(
        input=mock_content_dir,
        output=os.path.join(temp_dir, 'output'),
        templates=mock_templates_dir,
        include=os.path.join(temp_dir, 'include'),
        site={'title': 'Test Site'},
    )
    return settings


@pytest.fixture
def config_file(temp_dir, mock_content_dir, mock_templates_dir):
    """Write a JSON config file using paths relative to temp_dir."""
    config_path = Path(temp_dir) / 'config.json'
    config_path.write_text(json.dumps({
        'input': 'content',
        'output': 'output',
        'templates': 'templates',
        'site': {'title': 'Test Site'},
    }))
    return str(config_path)
