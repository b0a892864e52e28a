from lxml.html import HtmlElement
from structlog import get_logger

from ..utils import InvalidUrl, page_url
from ._base import PageDiscoverer

logger = get_logger(__name__)


class PaginationListDiscoverer(PageDiscoverer):
    """
    Discover article pages from the pagination list of the outlet.
    """

    def containers(self, document: HtmlElement) -> list[HtmlElement]:
        if not self.outlet.pagination_list_xpath:
            return []
        return document.xpath(self.outlet.pagination_list_xpath)

    def discover(self, document: HtmlElement, base_url: str) -> list[str]:
        # dict keeps the discovery order
        urls: dict[str, None] = {}

        for container in self.containers(document):
            for anchor in container.xpath(self.outlet.pagination_link_xpath):
                href = anchor.get("href")
                if not href:
                    continue
                try:
                    urls.setdefault(page_url(href, base_url))
                except InvalidUrl as e:
                    logger.debug("Skipping pagination link: %s", e)

        logger.debug("Found %d page links from pagination list", len(urls))
        return list(urls)
