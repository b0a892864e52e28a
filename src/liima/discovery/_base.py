from abc import ABC, abstractmethod

from lxml.html import HtmlElement

from ..extractor import Outlet


class PageDiscoverer(ABC):
    """Base class for discovering the page URLs of a paginated article"""

    def __init__(self, outlet: Outlet):
        self.outlet = outlet

    @abstractmethod
    def discover(self, document: HtmlElement, base_url: str) -> list[str]:
        """Collect unique absolute URLs of the article pages linked from `document`, in document order"""
        pass
