from lxml.html import HtmlElement
from structlog import get_logger

from ..utils import InvalidUrl, is_same_origin, page_url
from ._base import PageDiscoverer

logger = get_logger(__name__)


class ArticleLinksDiscoverer(PageDiscoverer):
    """
    Discover article pages by scraping all links from the page.

    Keeps only links to article pages on the same site. Used when the page has no pagination list, so the result
    is a guess that may include other articles too.
    """

    def discover(self, document: HtmlElement, base_url: str) -> list[str]:
        if self.outlet.article_path is None:
            return []

        urls: dict[str, None] = {}
        for href in document.xpath("//a/@href"):
            try:
                url = page_url(href, base_url)
            except InvalidUrl:
                continue

            if not is_same_origin(url, base_url):
                continue
            if not self.outlet.article_path.search(url):
                continue

            urls.setdefault(url)

        logger.debug("Found %d candidate page links by scanning all links", len(urls))
        return list(urls)
