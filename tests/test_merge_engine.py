"""
Tests for the merge/diff engine used by imports.
"""

from bookmark_tree.core.data_models import Folder
from bookmark_tree.core.merge_engine import apply_merge, count_bookmarks, diff_new
from bookmark_tree.core.netscape_html_parser import NetscapeHTMLParser
from bookmark_tree.core.tree_queries import collect_ids, find_item, iter_bookmarks, iter_items
from tests.fixtures.test_data import (
    SAMPLE_NETSCAPE_HTML,
    create_sample_tree,
    make_bookmark,
    make_folder,
)


def urls(tree):
    return [b.url for b in iter_bookmarks(tree)]


class TestDiffNew:
    """Test detection of new bookmarks in an import."""

    def test_existing_urls_are_filtered(self):
        """Test that bookmarks already present (after normalization) are dropped."""
        existing = create_sample_tree()
        imported = [
            make_folder(
                "i-work",
                "Work",
                [
                    make_bookmark("i1", "http://www.x.com/"),
                    make_bookmark("i2", "https://new.example.com"),
                ],
            ),
            make_bookmark("i3", "example.com/path"),
        ]

        result = diff_new(existing, imported)

        assert len(result) == 1
        assert result[0].title == "Work"
        assert urls(result) == ["https://new.example.com"]

    def test_folders_without_new_content_are_dropped(self):
        existing = create_sample_tree()
        imported = [
            make_folder("i-f", "Nested", [make_folder("i-g", "Deeper", [make_bookmark("i1", "x.com")])]),
            make_folder("i-empty", "Empty"),
        ]

        assert diff_new(existing, imported) == []

    def test_duplicate_scenario(self):
        """Test that x.com/ under Work is not offered again."""
        existing = [make_folder("work", "Work", [make_bookmark("a", "x.com")])]
        imported = [make_folder("w2", "Work", [make_bookmark("b", "x.com/")])]

        assert diff_new(existing, imported) == []

    def test_other_port_is_a_new_bookmark(self):
        existing = [make_bookmark("dev", "http://localhost:3000/")]
        imported = [make_bookmark("other", "http://localhost:8080/")]

        assert urls(diff_new(existing, imported)) == ["http://localhost:8080/"]

    def test_inputs_not_modified(self):
        existing = create_sample_tree()
        imported = [make_folder("f", "F", [make_bookmark("n", "https://n.com")])]

        result = diff_new(existing, imported)
        result[0].children[0].title = "changed"

        assert imported[0].children[0].title == "n"
        assert collect_ids(existing) == collect_ids(create_sample_tree())


class TestApplyMerge:
    """Test folding an approved import into the existing tree."""

    def test_folders_matched_by_title(self):
        """Test that bookmarks land in the existing folder with the same title."""
        existing = create_sample_tree()
        approved = [
            make_folder(
                "i-work",
                "Work",
                [make_folder("i-proj", "Projects", [make_bookmark("n1", "https://n1.com")])],
            )
        ]

        merged = apply_merge(existing, approved)

        projects = find_item(merged, "projects")
        assert [c.id for c in projects.children] == ["b", "c", "n1"]
        assert find_item(merged, "i-work") is None
        assert find_item(merged, "i-proj") is None

    def test_unmatched_folder_created(self):
        existing = create_sample_tree()
        approved = [make_folder("new-f", "Reading", [make_bookmark("n1", "https://n1.com")])]

        merged = apply_merge(existing, approved)

        assert merged[-1].title == "Reading"
        assert isinstance(merged[-1], Folder)
        assert [c.id for c in merged[-1].children] == ["n1"]

    def test_title_match_only_against_immediate_children(self):
        """Test that a same-titled folder deeper in the tree is not matched."""
        existing = create_sample_tree()
        approved = [make_folder("i-proj", "Projects", [make_bookmark("n1", "https://n1.com")])]

        merged = apply_merge(existing, approved)

        root_titles = [item.title for item in merged]
        assert root_titles.count("Projects") == 1
        assert [c.id for c in find_item(merged, "projects").children] == ["b", "c"]

    def test_existing_tree_not_modified(self):
        existing = create_sample_tree()
        apply_merge(existing, [make_bookmark("n1", "https://n1.com")])
        assert collect_ids(existing) == collect_ids(create_sample_tree())

    def test_existing_urls_skipped(self):
        existing = create_sample_tree()
        merged = apply_merge(existing, [make_bookmark("n1", "http://x.com/")])
        assert count_bookmarks(merged) == count_bookmarks(existing)

    def test_same_url_twice_in_batch_added_twice_by_default(self):
        """Test that the index is not refreshed during a merge by default."""
        approved = [
            make_bookmark("n1", "https://dup.example"),
            make_bookmark("n2", "https://www.dup.example/"),
        ]

        merged = apply_merge([], approved)

        assert urls(merged) == ["https://dup.example", "https://www.dup.example/"]

    def test_dedupe_within_batch(self):
        approved = [
            make_bookmark("n1", "https://dup.example"),
            make_bookmark("n2", "https://www.dup.example/"),
        ]

        merged = apply_merge([], approved, dedupe_within_batch=True)

        assert urls(merged) == ["https://dup.example"]

    def test_colliding_ids_are_regenerated(self):
        """Test that incoming ids already used by the tree are replaced."""
        existing = create_sample_tree()
        approved = [make_folder("work-2", "Other", [make_bookmark("a", "https://n1.com")])]

        merged = apply_merge(existing, approved)

        ids = [item.id for item in iter_items(merged)]
        assert len(ids) == len(set(ids))
        assert find_item(merged, "a").url == "https://x.com"


class TestMergeIdempotence:
    """Test that a merged import offers nothing new the second time."""

    def test_second_diff_is_empty(self):
        parser = NetscapeHTMLParser()
        existing = create_sample_tree()
        imported = parser.parse_html(SAMPLE_NETSCAPE_HTML)

        merged = apply_merge(existing, diff_new(existing, imported))

        assert count_bookmarks(merged) == count_bookmarks(existing) + 5
        assert diff_new(merged, imported) == []
        assert diff_new(merged, parser.parse_html(SAMPLE_NETSCAPE_HTML)) == []
