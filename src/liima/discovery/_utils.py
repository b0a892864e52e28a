"""
Utility functions for the discovery module.
"""

import re
from typing import Iterable

from structlog import get_logger

from ..abc import PageDescriptor

logger = get_logger(__name__)

PAGE_SUFFIX = re.compile(r"-(\d+)\.html$", re.IGNORECASE)

MAX_PAGE_NUMBER = 999
""" Larger numbers in the suffix are article ids, not page numbers. """


def page_number_from_url(url: str | None) -> int:
    """
    Read the page number from a paginated article URL.

    Pages after the first one end with ``-<page>.html``, e.g. ``.../some-article-3.html``. Single page articles
    may end with their numeric id instead (``.../123456.html`` or ``.../article-123456.html``), so the number is
    only trusted if the rest of the URL still has a hyphen and it is small enough to be a page count.

    Anything ambiguous is page 1.
    """
    if not url:
        return 1

    match = PAGE_SUFFIX.search(url)
    if not match:
        return 1

    before = url[:match.start()]
    if "-" not in before:
        return 1

    number = int(match.group(1))
    if number > MAX_PAGE_NUMBER:
        logger.debug("Number %d in %r looks like an article id, treating as page 1", number, url)
        return 1

    return max(number, 1)


def order_pages(urls: Iterable[str], start_url: str, max_pages: int) -> list[PageDescriptor]:
    """
    Sort page URLs into reading order.

    The start URL is always included. Pages with the same number keep their original order, with the start URL
    first. At most `max_pages` pages are returned.
    """
    seen: set[str] = set()
    candidates: list[str] = []
    for url in [start_url, *urls]:
        if url in seen:
            continue
        seen.add(url)
        candidates.append(url)

    pages = [PageDescriptor(url=url, page_number=page_number_from_url(url)) for url in candidates]
    pages.sort(key=lambda page: page.page_number)

    if len(pages) > max_pages:
        logger.warning("Article has %d pages, merging only the first %d", len(pages), max_pages)
        pages = pages[:max_pages]

    return pages
