"""
Discovery module for finding the pages of a paginated article.

Discoverers read the links of the page the merge is started from. The pagination list of the outlet is the
primary source; if the page has none, all links to article pages on the same site are used instead.

Usage:
    from liima.discovery import discover_page_urls, order_pages

    urls = discover_page_urls(document, "https://www.golem.de/news/some-article-2401-1.html", outlet)
    pages = order_pages(urls, start_url, max_pages=30)
"""

from lxml.html import HtmlElement
from structlog import get_logger

from ..extractor import Outlet
from ._base import PageDiscoverer
from ._utils import MAX_PAGE_NUMBER, order_pages, page_number_from_url
from .links import ArticleLinksDiscoverer
from .pagination import PaginationListDiscoverer

logger = get_logger(__name__)


def has_pagination(document: HtmlElement, base_url: str, outlet: Outlet) -> bool:
    """
    Whether the page links to other pages from its pagination list, i.e. if merging makes sense at all.

    An empty pagination list doesn't count, as there would be no pages to merge.
    """
    return bool(PaginationListDiscoverer(outlet).discover(document, base_url))


def discover_page_urls(document: HtmlElement, base_url: str, outlet: Outlet) -> list[str]:
    """
    Find the URLs of all pages of the article.

    Returns an empty list if no pages are found. The page itself is included only if it links to itself.
    """
    discoverers: list[PageDiscoverer] = [
        PaginationListDiscoverer(outlet),
        ArticleLinksDiscoverer(outlet),
    ]

    for discoverer in discoverers:
        if urls := discoverer.discover(document, base_url):
            logger.debug("Discovered %d pages using %s", len(urls), discoverer.__class__.__name__)
            return urls

    logger.info("No pages discovered from %s", base_url)
    return []


__all__ = [
    "PageDiscoverer",
    "PaginationListDiscoverer",
    "ArticleLinksDiscoverer",
    "MAX_PAGE_NUMBER",
    "discover_page_urls",
    "has_pagination",
    "order_pages",
    "page_number_from_url",
]
