"""Tests for LinkDiscoverer."""
from mdcrawl.deepcrawl.link_discoverer import DiscoveredLink, LinkDiscoverer, extract_links


BASE = "https://example.com/docs/index.html"


class TestLinkDiscoverer:

    def test_relative_links_resolved(self):
        html = '<a href="intro.html">Intro</a><a href="/api">API</a>'
        links = LinkDiscoverer().discover(html, BASE)
        assert [link.url for link in links] == [
            "https://example.com/docs/intro.html",
            "https://example.com/api",
        ]

    def test_anchor_text_trimmed(self):
        links = extract_links('<a href="/a">  Getting   started </a>', BASE)
        assert links == [DiscoveredLink(url="https://example.com/a", anchor_text="Getting   started")]

    def test_empty_anchor_text_is_none(self):
        links = extract_links('<a href="/a"><img src="x.png"></a>', BASE)
        assert links[0].anchor_text is None

    def test_dedup_by_url_and_anchor(self):
        html = (
            '<a href="/x">First</a>'
            '<a href="/x#part">First</a>'
            '<a href="/x">Second</a>'
            '<a href="/x"> First </a>'
        )
        links = extract_links(html, BASE)
        assert links == [
            DiscoveredLink(url="https://example.com/x", anchor_text="First"),
            DiscoveredLink(url="https://example.com/x", anchor_text="Second"),
        ]

    def test_non_http_links_dropped(self):
        html = (
            '<a href="mailto:a@example.com">Mail</a>'
            '<a href="javascript:void(0)">JS</a>'
            '<a href="tel:+100">Tel</a>'
            '<a href="/ok">OK</a>'
        )
        links = extract_links(html, BASE)
        assert [link.url for link in links] == ["https://example.com/ok"]

    def test_anchors_without_href_ignored(self):
        links = extract_links('<a name="top">Top</a><a href="">Empty</a>', BASE)
        assert links == []

    def test_empty_html(self):
        assert extract_links("", BASE) == []
        assert extract_links("   ", BASE) == []
        assert extract_links(None, BASE) == []

    def test_custom_selector(self):
        html = '<nav><a href="/nav">Nav</a></nav><main><a href="/body">Body</a></main>'
        links = LinkDiscoverer(follow_selector="main a[href]").discover(html, BASE)
        assert [link.url for link in links] == ["https://example.com/body"]
