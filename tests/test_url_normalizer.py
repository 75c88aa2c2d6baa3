"""
Tests for URL normalization and the duplicate index.
"""

import pytest

from bookmark_tree.core.url_normalizer import build_url_index, find_duplicate, normalize_url
from tests.fixtures.test_data import create_sample_tree, make_bookmark, make_folder


class TestNormalizeUrl:
    """Test canonical URL form."""

    def test_equivalent_forms(self):
        """Test that scheme, www, host case and trailing slash are ignored."""
        expected = normalize_url("https://www.Example.com/path/")

        assert expected == "example.com/path"
        assert normalize_url("example.com/path") == expected
        assert normalize_url("http://EXAMPLE.com/path/") == expected

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://example.com", "example.com"),
            ("https://example.com/", "example.com"),
            ("https://example.com:443/a", "example.com/a"),
            ("http://example.com:80/a", "example.com/a"),
            ("https://example.com/a?q=1#frag", "example.com/a"),
            ("https://user:pw@Example.com/a", "example.com/a"),
            ("ftp://files.example.com/pub/", "files.example.com/pub"),
            ("  https://example.com/a  ", "example.com/a"),
        ],
    )
    def test_components_dropped(self, url, expected):
        assert normalize_url(url) == expected

    def test_non_default_port_is_kept(self):
        assert normalize_url("https://example.com:8443/a") == "example.com:8443/a"
        assert normalize_url("localhost:3000/") == "localhost:3000"
        assert normalize_url("http://localhost:3000/") != normalize_url("http://localhost:8080/")

    def test_path_case_is_kept(self):
        """Test that only the host is lowercased."""
        assert normalize_url("https://example.com/CaseSensitive") == "example.com/CaseSensitive"

    def test_only_one_trailing_slash_removed(self):
        assert normalize_url("https://example.com/a//") == "example.com/a/"

    def test_www_only_stripped_as_prefix(self):
        assert normalize_url("https://wwwexample.com") == "wwwexample.com"
        assert normalize_url("https://sub.www.example.com") == "sub.www.example.com"

    def test_empty(self):
        assert normalize_url("") == ""
        assert normalize_url(None) == ""

    def test_unparsable_falls_back_to_text(self):
        """Test that strings urlparse rejects still normalize without raising."""
        assert normalize_url("http://[not-ipv6/path/") == "[not-ipv6/path"


class TestUrlIndex:
    """Test the URL -> id index and duplicate lookup."""

    def test_index_maps_normalized_urls(self):
        index = build_url_index(create_sample_tree())

        assert index["x.com"] == "a"
        assert index["github.com/org/repo"] == "b"
        assert index["example.com/path"] == "e"
        assert len(index) == 5

    def test_first_bookmark_wins(self):
        tree = [
            make_bookmark("first", "https://dup.com/"),
            make_folder("f", "F", [make_bookmark("second", "http://www.dup.com")]),
        ]
        assert build_url_index(tree) == {"dup.com": "first"}

    def test_duplicate_scenario(self):
        """Test that x.com/ is a duplicate of x.com stored under Work."""
        tree = [make_folder("work", "Work", [make_bookmark("a", "x.com")])]

        duplicate = find_duplicate(tree, "x.com/")

        assert duplicate is not None
        assert duplicate.id == "a"

    def test_find_duplicate_excludes_item_being_edited(self):
        tree = create_sample_tree()
        assert find_duplicate(tree, "https://x.com/", exclude_id="a") is None
        assert find_duplicate(tree, "https://unique.example") is None
