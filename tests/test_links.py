"""Tests for website link extraction and the denylist."""

from tokenwatch.links import NO_WEBSITE, NO_WEBSITE_LINKS, extract_links, is_excluded, website_links


class TestExtractLinks:
    """Tests for extract_links."""

    def test_finds_http_and_https(self):
        text = "// site: https://mytoken.io\n// old: http://mytoken.net/path?a=1"
        assert extract_links(text) == ["https://mytoken.io", "http://mytoken.net/path?a=1"]

    def test_stops_at_quotes_and_whitespace(self):
        text = 'string public website = "https://mytoken.io/home";'
        assert extract_links(text) == ["https://mytoken.io/home"]

    def test_empty_source(self):
        assert extract_links("") == []
        assert extract_links(None) == []


class TestWebsiteLinks:
    """Tests for website_links filtering."""

    def test_code_host_is_filtered(self):
        text = "Website: https://mytoken.io\nSource: https://github.com/foo/bar"
        assert website_links(text) == ("https://mytoken.io",)

    def test_denylisted_prefixes(self):
        for link in (
            "https://eips.ethereum.org/EIPS/eip-20",
            "https://docs.openzeppelin.com/contracts",
            "https://forum.openzeppelin.com/t/123",
            "https://blog.example.com/post",
            "https://solidity.readthedocs.io/en/latest",
        ):
            assert is_excluded(link), link
        assert not is_excluded("https://mytoken.io")

    def test_no_surviving_links_gives_sentinel(self):
        text = "See https://eips.ethereum.org/EIPS/eip-20 and https://github.com/OpenZeppelin"
        result = website_links(text)
        assert result == NO_WEBSITE_LINKS
        assert result == (NO_WEBSITE,)

    def test_no_links_at_all_gives_sentinel(self):
        assert website_links("contract Token {}") == NO_WEBSITE_LINKS

    def test_duplicates_reported_once_in_order(self):
        text = "https://b.io https://a.io https://b.io"
        assert website_links(text) == ("https://b.io", "https://a.io")
