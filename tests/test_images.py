"""Unit tests for image reference resolution."""
import pytest

from wordpress.images import extension_from_mime, extension_from_url, extract_image_url


class TestExtractImageUrl:
    """Test cases for extract_image_url."""

    def test_string(self):
        assert extract_image_url('  https://example.com/a.jpg ') == 'https://example.com/a.jpg'

    def test_empty_string(self):
        assert extract_image_url('   ') is None

    def test_list_returns_first_resolvable(self):
        value = ['', None, {'alt': ''}, {'url': 'https://example.com/b.jpg'}, 'https://example.com/c.jpg']
        assert extract_image_url(value) == 'https://example.com/b.jpg'

    def test_url_key(self):
        assert extract_image_url({'url': 'X'}) == 'X'

    def test_priority_keys_win_over_insertion_order(self):
        value = {'full': 'https://example.com/full.jpg', 'url': 'https://example.com/url.jpg'}
        assert extract_image_url(value) == 'https://example.com/url.jpg'

    def test_wordpress_sizes_shape(self):
        value = {
            'id': 99,
            'sizes': {
                'medium': {'url': 'https://example.com/medium.jpg', 'width': 300},
            },
        }
        assert extract_image_url(value) == 'https://example.com/medium.jpg'

    def test_nested_fallback_without_priority_keys(self):
        value = {'id': 7, 'meta': {'files': [{'href': 'https://example.com/deep.png'}]}}
        assert extract_image_url(value) == 'https://example.com/deep.png'

    def test_empty_priority_value_falls_through(self):
        value = {'url': '', 'guid': {'rendered': 'https://example.com/guid.jpg'}}
        assert extract_image_url(value) == 'https://example.com/guid.jpg'

    @pytest.mark.parametrize('value', [None, 0, 42, 3.5, True, False, [], {}, {'id': 5}])
    def test_unresolvable(self, value):
        assert extract_image_url(value) is None


class TestExtensions:
    """Test cases for extension helpers."""

    def test_extension_from_url_path(self):
        assert extension_from_url('https://example.com/uploads/Poster.PNG?ver=2') == '.png'

    def test_long_extension_falls_back_to_mime(self):
        assert extension_from_url('https://example.com/file.download', 'image/webp') == '.webp'

    def test_missing_extension_falls_back_to_mime(self):
        assert extension_from_url('https://example.com/image', 'image/avif') == '.avif'

    @pytest.mark.parametrize('mime_type, expected', [
        ('image/png', '.png'),
        ('image/webp', '.webp'),
        ('image/gif', '.gif'),
        ('image/svg+xml', '.svg'),
        ('image/avif', '.avif'),
        ('IMAGE/PNG', '.png'),
        ('image/jpeg', '.jpg'),
        ('application/octet-stream', '.jpg'),
        (None, '.jpg'),
    ])
    def test_extension_from_mime(self, mime_type, expected):
        assert extension_from_mime(mime_type) == expected
