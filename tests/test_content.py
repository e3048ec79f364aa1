"""Tests for content classification and loading."""

import os
from datetime import datetime
from pathlib import Path

import pytest

from mub.content import (ContentCollection, ContentKind, ContentLoader, read_image_size)
from mub.converter import SourceKind
from mub.errors import ContentIOError, FrontMatterIncomplete, ProjectContentMissing, UnsupportedExtension


class TestClassify:
    """Test cases for ContentLoader.classify."""

    def test_markdown_post(self, mock_content_dir, mock_output_dir):
        """Test a markdown file is a post with a derived location."""
        loader = ContentLoader(mock_output_dir)
        source = Path(mock_content_dir) / 'posts' / 'hello.md'

        result = loader.classify(source)

        assert result.kind is ContentKind.POST
        assert result.source_kind is SourceKind.MARKDOWN
        assert result.location.output_url == 'posts/hello.html'
        assert result.location.destination_path == Path(mock_output_dir) / 'posts' / 'hello.html'
        assert result.location.filename == 'hello.md'
        assert result.images == ()

    def test_html_post(self, mock_content_dir, mock_output_dir):
        """Test an HTML file is a post with an HTML source kind."""
        loader = ContentLoader(mock_output_dir)
        result = loader.classify(Path(mock_content_dir) / 'posts' / 'about.html')

        assert result.source_kind is SourceKind.HTML
        assert result.location.output_url == 'posts/about.html'

    def test_unsupported_extension(self, temp_dir, mock_output_dir):
        """Test that unknown extensions are rejected."""
        notes = Path(temp_dir) / 'notes.txt'
        notes.write_text('hello')

        with pytest.raises(UnsupportedExtension) as exc_info:
            ContentLoader(mock_output_dir).classify(notes)

        assert exc_info.value.path == str(notes)

    def test_photo_project(self, mock_content_dir, mock_output_dir, image_factory):
        """Test a directory is a photo project with its images, excluding other files."""
        trip = Path(mock_content_dir) / 'projects' / 'trip'
        (trip / 'notes.txt').write_text('not an image')
        image_factory(trip / 'c.PNG', format='PNG')

        result = ContentLoader(mock_output_dir).classify(trip)

        assert result.kind is ContentKind.PROJECT
        assert result.source_kind is SourceKind.HTML
        assert result.content_path == trip / 'post.html'
        assert result.location.output_url == 'photos/trip.html'
        names = {image.filename for image in result.images}
        assert names == {'a.jpg', 'b.jpg', 'c.PNG'}
        for image in result.images:
            assert image.output_url == f'photos/trip/{image.filename}'
            assert image.destination_path == Path(mock_output_dir) / 'photos' / 'trip' / image.filename

    def test_photo_project_dimensions(self, mock_content_dir, mock_output_dir):
        """Test image dimensions are read with Pillow."""
        result = ContentLoader(mock_output_dir).classify(Path(mock_content_dir) / 'projects' / 'trip')
        sizes = {image.filename: (image.width, image.height) for image in result.images}

        assert sizes == {'a.jpg': (40, 30), 'b.jpg': (30, 40)}

    def test_photo_project_missing_content(self, temp_dir, mock_output_dir, image_factory):
        """Test that a project without post.html fails for that directory."""
        project = Path(temp_dir) / 'empty-project'
        image_factory(project / 'a.jpg')

        with pytest.raises(ProjectContentMissing) as exc_info:
            ContentLoader(mock_output_dir).classify(project)

        assert exc_info.value.path == str(project)

    def test_custom_subdirs_and_project_file(self, temp_dir, mock_output_dir):
        """Test configurable output subdirectories and canonical file name."""
        project = Path(temp_dir) / 'walk'
        project.mkdir()
        (project / 'index.md').write_text('---\ntitle: Walk\ndate: 2024-01-01\n---\n')

        loader = ContentLoader(mock_output_dir, photo_subdir='gallery', project_file='index.md')
        result = loader.classify(project)

        assert result.source_kind is SourceKind.MARKDOWN
        assert result.location.output_url == 'gallery/walk.html'

    def test_location_is_deterministic(self, mock_content_dir, mock_output_dir):
        """Test that classifying the same entry twice gives the same location."""
        loader = ContentLoader(mock_output_dir)
        source = Path(mock_content_dir) / 'posts' / 'hello.md'

        assert loader.classify(source).location == ContentLoader(mock_output_dir).classify(source).location


class TestLoad:
    """Test cases for ContentLoader.load."""

    def test_load_markdown_post(self, mock_content_dir, mock_output_dir):
        """Test loading a markdown post end to end."""
        item = ContentLoader(mock_output_dir).load(Path(mock_content_dir) / 'posts' / 'hello.md')

        assert item.title == 'Hi'
        assert item.published is True
        assert item.raw == '# Hi\nWorld\n'
        assert '<h1>Hi</h1>' in item.html
        assert item.text == 'Hi World '
        assert item.template == 'post.html'
        assert item.name == 'hello'

    def test_load_html_post(self, mock_content_dir, mock_output_dir):
        """Test an HTML post has identity html and no text."""
        item = ContentLoader(mock_output_dir).load(Path(mock_content_dir) / 'posts' / 'about.html')

        assert item.html == item.raw == '<p>About this site.</p>\n'
        assert item.text is None
        assert item.search_text == item.raw
        assert item.published is False

    def test_load_project(self, mock_content_dir, mock_output_dir):
        """Test loading a photo project."""
        item = ContentLoader(mock_output_dir).load(Path(mock_content_dir) / 'projects' / 'trip')

        assert item.kind is ContentKind.PROJECT
        assert item.template == 'project.html'
        assert item.metadata.extra == {'location': 'Utah'}
        assert len(item.images) == 2

    def test_load_incomplete(self, temp_dir, mock_output_dir):
        """Test a post missing its title reports the file path."""
        post = Path(temp_dir) / 'untitled.md'
        post.write_text('---\ndate: 2024-01-01\n---\nbody\n')

        with pytest.raises(FrontMatterIncomplete) as exc_info:
            ContentLoader(mock_output_dir).load(post)

        assert exc_info.value.path == str(post)

    def test_load_unreadable(self, temp_dir, mock_output_dir):
        """Test that a non UTF-8 file is an IO error."""
        post = Path(temp_dir) / 'binary.md'
        post.write_bytes(b'\xff\xfe\x00garbage')

        with pytest.raises(ContentIOError):
            ContentLoader(mock_output_dir).load(post)

    def test_yaml_front_matter_style(self, temp_dir, mock_output_dir):
        """Test the loader passes the front matter style through."""
        post = Path(temp_dir) / 'tagged.md'
        post.write_text('---\ntitle: Tagged\ndate: 2024-01-01\ntags: [a, b]\n---\ntext\n')

        item = ContentLoader(mock_output_dir, front_matter='yaml').load(post)

        assert item.metadata.extra['tags'] == ['a', 'b']


class TestContentCollection:
    """Test cases for ContentCollection."""

    def _items(self, mock_content_dir, mock_output_dir):
        loader = ContentLoader(mock_output_dir)
        root = Path(mock_content_dir)
        return [
            loader.load(root / 'posts' / 'hello.md'),
            loader.load(root / 'posts' / 'about.html'),
            loader.load(root / 'projects' / 'trip'),
        ]

    def test_merge_is_loss_free(self, mock_content_dir, mock_output_dir):
        """Test that merging batches keeps every item exactly once."""
        items = self._items(mock_content_dir, mock_output_dir)
        generated_at = datetime(2024, 5, 1, 12, 0)

        collection = ContentCollection.merge([items[:1], [], items[1:]], generated_at=generated_at)

        assert len(collection) == 3
        assert list(collection) == items
        assert collection.generated_at == generated_at

    def test_views(self, mock_content_dir, mock_output_dir):
        """Test published, posts and projects views."""
        collection = ContentCollection.merge([self._items(mock_content_dir, mock_output_dir)])

        assert [item.url for item in collection.published] == ['posts/hello.html', 'photos/trip.html']
        assert [item.url for item in collection.posts] == ['posts/hello.html', 'posts/about.html']
        assert [item.url for item in collection.projects] == ['photos/trip.html']

    def test_sorted_items_oldest_first(self, mock_content_dir, mock_output_dir):
        """Test sorting by date ascending."""
        collection = ContentCollection.merge([self._items(mock_content_dir, mock_output_dir)])

        dates = [item.date for item in collection.sorted_items(reverse=False)]
        assert dates == ['2023-06-01', '2023-09-15', '2024-01-01']

    def test_collection_is_immutable(self):
        """Test that the collection can't be reassigned after merging."""
        collection = ContentCollection.merge([])
        with pytest.raises(AttributeError):
            collection.items = ()


class TestReadImageSize:
    """Test cases for read_image_size."""

    def test_not_an_image(self, temp_dir):
        """Test a file Pillow can't open yields no dimensions."""
        fake = os.path.join(temp_dir, 'fake.jpg')
        with open(fake, 'wb') as f:
            f.write(b'not really a jpeg')

        assert read_image_size(fake) == (None, None)
