"""Finding links in markdown text."""

from __future__ import annotations

import re

_ANGLE_LINK = re.compile(r"(<(.+?)>)")
_INLINE_LINK = re.compile(r"(\[.*?\]\((.+?)\))")
_BARE_URL = re.compile(r"\b\w+?:\/\/[^\s]+[^\s>\)]")
_WWW_URL = re.compile(r"\bwww\.[^\s]+\.[^\s]+\b")
_REFERENCE_LINK = re.compile(r"(\[.*?\]\[(.+?)\])")
_VALID_URL = re.compile(r"^\w+:\/\/.+")


def parse_markdown_urls(text: str, document_text: str | None = None) -> dict[str, str]:
    """Map each link text found in ``text`` to its url, sorted by link text.

    Reference definitions (``[id]: url``) are looked up in ``document_text``,
    or in ``text`` itself when it is not given.
    """
    if document_text is None:
        document_text = text
    urls: dict[str, str] = {}

    for match in _ANGLE_LINK.finditer(text):
        urls[match.group(1)] = match.group(2)
    for match in _INLINE_LINK.finditer(text):
        urls[match.group(1)] = match.group(2)
    for match in _BARE_URL.finditer(text):
        urls[match.group(0)] = match.group(0)
    for match in _WWW_URL.finditer(text):
        urls[match.group(0)] = "http://" + match.group(0)
    for match in _REFERENCE_LINK.finditer(text):
        reference = re.compile(r"\[" + re.escape(match.group(2)) + r"\]: (.+)")
        found = reference.search(document_text)
        if found:
            urls[match.group(1)] = found.group(1)

    return dict(sorted(urls.items()))


def markdown_url_at(text: str, position: int, document_text: str | None = None) -> str | None:
    """Return the url of the link covering ``position`` in ``text``, if any."""
    for link_text, url in parse_markdown_urls(text, document_text).items():
        start = text.find(link_text)
        if start >= 0 and start <= position < start + len(link_text):
            return url
    return None


def is_valid_url(url: str) -> bool:
    """True if ``url`` has the form ``scheme://something``."""
    return _VALID_URL.match(url) is not None