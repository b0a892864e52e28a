from copy import deepcopy
from typing import Optional

from lxml import html
from lxml.html import HtmlElement
from markdownify import markdownify
from structlog import get_logger

from ..article import ArticleFragment
from ..utils import InvalidUrl, absolute_url, normalize_srcset
from ._common import Outlet

logger = get_logger(__name__)

URL_ATTRIBUTES = [
    (".//img[@src]", "src"),
    (".//a[@href]", "href"),
    (".//source[@src]", "src"),
    (".//video[@poster]", "poster"),
]
SRCSET_XPATH = ".//img[@srcset] | .//source[@srcset]"


class SanitizeNotFound(LookupError):
    """
    Raised when a page has no recognizable article container.
    """

    def __init__(self, url: Optional[str] = None):
        super().__init__(f"No article container found in {url or 'document'}")
        self.url = url


def _drop(element: HtmlElement) -> None:
    """
    Remove the element, keeping the text that follows it.
    """
    if element.getparent() is not None:
        element.drop_tree()


def select_article(document: HtmlElement, outlet: Outlet) -> Optional[HtmlElement]:
    """
    Find the main article container, trying the outlet's candidates in order.
    """
    for xpath in outlet.article_xpaths:
        if found := document.xpath(xpath):
            logger.debug("Article container matched %r", xpath)
            return found[0]
    return None


def extract_fragment(document: HtmlElement, outlet: Outlet, base_url: str) -> ArticleFragment:
    """
    Copy the article body out of `document` and clean it up.

    The heading is left out, as the merged article keeps only the heading of the first page. The source
    document is not modified.

    :param base_url: URL of the page, used to resolve relative links.
    :raises SanitizeNotFound: if the page has no article container.
    """
    article = select_article(document, outlet)
    if article is None:
        raise SanitizeNotFound(base_url)

    fragment = html.Element("div")
    for child in article:
        # Comments and processing instructions have no string tag
        if not isinstance(child.tag, str):
            continue
        if child.tag.lower() in outlet.heading_tags:
            continue

        node = deepcopy(child)
        node.tail = None
        fragment.append(node)

    cleanup_fragment(fragment, outlet)
    absolutize_urls(fragment, base_url)

    return ArticleFragment.from_nodes(list(fragment))


def cleanup_fragment(fragment: HtmlElement, outlet: Outlet) -> HtmlElement:
    """
    Remove ads, teasers, pagination and other non-content elements from `fragment`.

    Removal is done in place, and running it again on the same fragment changes nothing.
    """
    for xpath in outlet.clutter_xpaths:
        for element in fragment.xpath(xpath):
            _drop(element)

    if outlet.ad_slot_xpath:
        for slot in fragment.xpath(outlet.ad_slot_xpath):
            parent = slot.getparent()
            if parent is None:
                continue
            # Slot directly in the fragment: nothing wraps it
            if parent is fragment:
                _drop(slot)
            else:
                _drop(parent)

    if outlet.sponsored_list_xpath and outlet.sponsored_label_xpath:
        for link_list in fragment.xpath(outlet.sponsored_list_xpath):
            labels = link_list.xpath(outlet.sponsored_label_xpath)
            if labels and labels[0].text_content().strip() == outlet.sponsored_label:
                logger.debug("Removing sponsored link list")
                _drop(link_list)

    if outlet.gallery_xpath and outlet.inactive_gallery_item_xpath:
        for gallery in fragment.xpath(outlet.gallery_xpath):
            for item in gallery.xpath(outlet.inactive_gallery_item_xpath):
                _drop(item)

    return fragment


def absolutize_urls(fragment: HtmlElement, base_url: str) -> HtmlElement:
    """
    Rewrite links and media sources of `fragment` into absolute URLs.

    Values that can't be resolved are left as they are.
    """
    for xpath, attribute in URL_ATTRIBUTES:
        for element in fragment.xpath(xpath):
            value = element.get(attribute)
            try:
                element.set(attribute, absolute_url(value, base_url))
            except InvalidUrl as e:
                logger.debug("Leaving %s=%r untouched: %s", attribute, value, e)

    for element in fragment.xpath(SRCSET_XPATH):
        element.set("srcset", normalize_srcset(element.get("srcset"), base_url))

    return fragment


def html_to_markdown(markup: str) -> str:
    """
    Convert HTML to markdown.
    """
    md = markdownify(markup,
                     heading_style="ATX",
                     escape_misc=True,
                     escape_underscores=False,
                     autolinks=True,
                     default_title=False).strip()
    return md
