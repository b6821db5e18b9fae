"""
Unit tests for directory listings.
"""

import os

import pytest

from fserv.handlers.listing import (
    DirectoryLister,
    ListingEntry,
    ListingError,
    LISTING_STYLE,
)


class TestEntries:
    """Tests for DirectoryLister.entries."""

    def test_sorted_and_hidden_skipped(self, site_root):
        """Test order and the dot-file rule."""
        names = [e.name for e in DirectoryLister().entries(str(site_root))]
        assert names == ["a.txt", "data.json", "docs", "empty", "notes.xyz", "sub"]

    def test_directory_flag(self, site_root):
        """Test that directories are marked."""
        entries = {e.name: e.is_dir for e in DirectoryLister().entries(str(site_root))}
        assert entries["docs"] is True
        assert entries["a.txt"] is False

    def test_empty_directory(self, site_root):
        """Test a directory with no entries."""
        assert DirectoryLister().entries(str(site_root / "empty")) == []

    def test_unreadable_directory(self, tmp_path):
        """Test that a missing directory raises ListingError."""
        with pytest.raises(ListingError):
            DirectoryLister().entries(str(tmp_path / "missing"))

    def test_symlink_to_directory(self, site_root):
        """Test that links to directories are listed as directories."""
        os.symlink(site_root / "docs", site_root / "docs-link")
        entries = {e.name: e.is_dir for e in DirectoryLister().entries(str(site_root))}
        assert entries["docs-link"] is True


class TestListingEntry:
    """Tests for ListingEntry.display_name."""

    def test_file(self):
        assert ListingEntry("a.txt", False).display_name == "a.txt"

    def test_directory_gets_slash(self):
        assert ListingEntry("img", True).display_name == "img/"

    def test_undecodable_name(self):
        """Test that surrogate-escaped bytes are shown as U+FFFD."""
        name = b"bad\xff".decode("utf-8", "surrogateescape")
        assert ListingEntry(name, False).display_name == "bad�"


class TestRender:
    """Tests for DirectoryLister.render."""

    def test_links_are_absolute(self, site_root):
        """Test hrefs built from the request path."""
        page = DirectoryLister().render(str(site_root / "docs"), "/docs")
        assert '<li><a href="/docs/guide.txt">guide.txt</a></li>' in page
        assert '<li><a href="/docs/img/">img/</a></li>' in page

    def test_root_links(self, site_root):
        """Test that the root listing has single-slash links."""
        page = DirectoryLister().render(str(site_root), "/")
        assert '<a href="/a.txt">a.txt</a>' in page
        assert '<a href="/sub/">sub/</a>' in page
        assert "//" not in page.split("<ul>")[1]

    def test_hidden_excluded(self, site_root):
        """Test that dot entries never appear."""
        page = DirectoryLister().render(str(site_root), "/")
        assert ".secret" not in page

    def test_title_and_style(self, site_root):
        """Test the document frame."""
        page = DirectoryLister().render(str(site_root / "docs"), "/docs")
        assert page.startswith("<!DOCTYPE html>")
        assert "<title>/docs</title>" in page
        assert f"<style>{LISTING_STYLE}</style>" in page
        assert page.endswith("</ul></body></html>")

    def test_empty_directory(self, site_root):
        """Test an empty list."""
        page = DirectoryLister().render(str(site_root / "empty"), "/empty")
        assert "<ul></ul>" in page

    def test_names_are_escaped(self, site_root):
        """Test that markup in file names is escaped."""
        (site_root / "empty" / "<b>&.txt").write_text("x")
        page = DirectoryLister().render(str(site_root / "empty"), "/empty")
        assert "&lt;b&gt;&amp;.txt" in page
        assert "<b>" not in page

    def test_names_not_percent_encoded(self, site_root):
        """Test that spaces stay literal in links."""
        (site_root / "empty" / "a b.txt").write_text("x")
        page = DirectoryLister().render(str(site_root / "empty"), "/empty")
        assert 'href="/empty/a b.txt"' in page

    def test_size_limit(self, site_root):
        """Test that an oversized page raises ListingError."""
        with pytest.raises(ListingError, match="limit"):
            DirectoryLister(max_size=100).render(str(site_root), "/")

    def test_unreadable(self, tmp_path):
        """Test that a vanished directory raises ListingError."""
        with pytest.raises(ListingError):
            DirectoryLister().render(str(tmp_path / "gone"), "/gone")
