"""Tests for link normalization."""

import pytest

from ptscraper.links import fix_link


class TestFixLink:
    """Test suite for fix_link rule ordering."""

    def test_protocol_relative_takes_active_scheme(self) -> None:
        assert fix_link("//x.com/a", "https://site.org") == "https://x.com/a"
        assert fix_link("//x.com/a", "http://site.org/") == "http://x.com/a"

    def test_magnet_unchanged(self) -> None:
        magnet = "magnet:?xt=urn:btih:abc"
        assert fix_link(magnet, "https://site.org") == magnet

    def test_relative_joined_onto_active_url(self) -> None:
        assert (
            fix_link("foo.php?id=1", "https://site.org/base/")
            == "https://site.org/base/foo.php?id=1"
        )

    @pytest.mark.parametrize(
        "uri,active,expected",
        [
            ("/download.php?id=3", "https://site.org/", "https://site.org/download.php?id=3"),
            ("details.php?id=3", "https://site.org", "https://site.org/details.php?id=3"),
            ("/x", "https://site.org/base", "https://site.org/base/x"),
        ],
    )
    def test_slashes_collapse_on_join(self, uri: str, active: str, expected: str) -> None:
        assert fix_link(uri, active) == expected

    @pytest.mark.parametrize(
        "uri",
        ["https://cdn.example/t/1.torrent", "http://mirror.example/x", "HTTPS://Upper.example/"],
    )
    def test_absolute_unchanged(self, uri: str) -> None:
        assert fix_link(uri, "https://site.org/") == uri

    def test_empty_link_stays_empty(self) -> None:
        assert fix_link("", "https://site.org/") == ""
