import re
from abc import ABC
from re import Pattern
from typing import ClassVar, Optional

from structlog import get_logger

logger = get_logger(__name__)


def has_class(name: str) -> str:
    """
    XPath predicate matching elements carrying the CSS class `name`.

    ..example::
        f"//div[{has_class('go-pagination')}]"
    """
    return f"contains(concat(' ', normalize-space(@class), ' '), ' {name} ')"


class Outlet(ABC):
    """
    Markup convention of a news site.

    Describes where the article body, its pagination and the clutter around it are found. Queries are XPath
    expressions; the ones used inside an extracted fragment are relative (``.//``).
    """
    name: Optional[str] = None
    valid_url: Pattern | list[Pattern] | str

    language: str = "en"

    article_xpaths: ClassVar[list[str]] = [
        "//main//article",
        "//article",
    ]
    """ Candidates for the main article container, in order of preference. """

    title_xpath: str = "//h1"
    heading_tags: ClassVar[set[str]] = {"h1"}

    pagination_list_xpath: Optional[str] = None
    pagination_link_xpath: str = ".//a"

    article_path: Optional[Pattern] = None
    """ Path of article pages on the outlet's own site, used when no pagination list is found. """

    clutter_xpaths: ClassVar[list[str]] = []
    """ Elements removed from every fragment. """

    ad_slot_xpath: Optional[str] = None
    """ Ad slots. The element wrapping the slot is removed together with it. """

    sponsored_list_xpath: Optional[str] = None
    sponsored_label_xpath: Optional[str] = None
    sponsored_label: Optional[str] = None

    gallery_xpath: Optional[str] = None
    inactive_gallery_item_xpath: Optional[str] = None

    pagination_ui_xpaths: ClassVar[list[str]] = []
    """ Pagination controls removed from the host document after an in-place merge. """

    nav_link_pattern: Optional[Pattern] = None
    """ Text of page navigation links, e.g. "Next page". """

    page_label: str = "Page {page_number}"
    source_link_text: str = "Original page"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name!r}>"

    def url_patterns(self) -> list[Pattern]:
        patterns = self.valid_url if isinstance(self.valid_url, list) else [self.valid_url]

        compiled = []
        for pattern in patterns:
            match pattern:
                case Pattern():
                    compiled.append(pattern)
                case str():
                    compiled.append(re.compile(r"^" + re.escape(pattern)))
                case _:
                    raise ValueError(f"Invalid outlet URL rule type: {type(pattern)}")
        return compiled

    def matches(self, url: str) -> bool:
        return any(pattern.match(str(url)) for pattern in self.url_patterns())
