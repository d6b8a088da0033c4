"""Hyperlink extraction from HTML pages."""

from typing import Iterator

from bs4 import BeautifulSoup, SoupStrainer

from .url_resolver import resolve_url

# Only <a href> tags are needed, so skip building the rest of the tree
LINK_STRAINER = SoupStrainer("a", href=True)


def extract_links(html: str, base_url: str) -> Iterator[str]:
    """Yield absolute URLs for every anchor in an HTML document.

    Each href is resolved against base_url. Fragment-only hrefs, hrefs that
    cannot be resolved, and non-http(s) targets (mailto:, javascript:, ...)
    are skipped silently. Duplicates are yielded as often as they appear.

    Args:
        html: Raw HTML content.
        base_url: URL the HTML was served from (after redirects), used to
            resolve relative links.

    Yields:
        Normalized absolute http(s) URLs, in document order.
    """
    soup = BeautifulSoup(html, "lxml", parse_only=LINK_STRAINER)

    for anchor in soup.find_all("a", href=True):
        resolved = resolve_url(base_url, anchor["href"])
        if resolved:
            yield resolved
