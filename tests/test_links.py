import pytest

from notevault.links import is_valid_url, markdown_url_at, parse_markdown_urls


def test_angle_link():
    urls = parse_markdown_urls("see <https://example.com> now")
    assert urls["<https://example.com>"] == "https://example.com"
    assert urls["https://example.com"] == "https://example.com"


def test_inline_link():
    urls = parse_markdown_urls("[Docs](https://example.com/docs)")
    assert urls["[Docs](https://example.com/docs)"] == "https://example.com/docs"


def test_www_link_gets_http_prefix():
    urls = parse_markdown_urls("visit www.example.com today")
    assert urls["www.example.com"] == "http://www.example.com"


def test_reference_link_in_same_text():
    urls = parse_markdown_urls("[site][1]\n[1]: https://example.org")
    assert urls["[site][1]"] == "https://example.org"


def test_reference_link_from_document_text():
    urls = parse_markdown_urls("[a][ref]", document_text="[ref]: https://example.net")
    assert urls == {"[a][ref]": "https://example.net"}


def test_missing_reference_is_skipped():
    assert parse_markdown_urls("[a][nowhere]") == {}


def test_keys_are_sorted():
    urls = parse_markdown_urls("www.example.com [x](https://example.com/x) <ftp://example.com>")
    assert list(urls) == sorted(urls)
    assert len(urls) >= 3


def test_plain_text_has_no_links():
    assert parse_markdown_urls("nothing to see here") == {}


def test_url_at_position_inside_link():
    text = "see <https://example.com> now"
    start = text.index("<")
    assert markdown_url_at(text, start) == "https://example.com"
    assert markdown_url_at(text, text.index(">")) == "https://example.com"


def test_url_at_position_outside_link():
    text = "see <https://example.com> now"
    assert markdown_url_at(text, 0) is None
    assert markdown_url_at(text, len(text) - 1) is None


def test_url_at_position_end_is_exclusive():
    text = "[Docs](https://example.com/docs)"
    assert markdown_url_at(text, len(text)) is None
    assert markdown_url_at(text, len(text) - 1) == "https://example.com/docs"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://example.com", True),
        ("file:///tmp/notes.txt", True),
        ("example.com", False),
        ("mailto:someone", False),
        ("", False),
    ],
)
def test_is_valid_url(url, expected):
    assert is_valid_url(url) is expected