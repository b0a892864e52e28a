"""
Output renderers for merged articles.

The merged article is either written back into the page it was started from, or rendered as a standalone
document (HTML or markdown).
"""
from pathlib import Path
from typing import Iterable, Literal
from urllib.parse import urlsplit

from jinja2 import Template
from lxml import html
from lxml.html import HtmlElement
from structlog import get_logger

from .abc import PageDescriptor
from .article import MergedDocument
from .discovery import page_number_from_url
from .extractor import Outlet, SanitizeNotFound, html_to_markdown, select_article
from .scraper import HostDocument

logger = get_logger(__name__)

OutputFormat = Literal["html", "markdown"]

SEPARATOR_CLASS = "gm-merged-sep"
LABEL_CLASS = "gm-merged-label"

NAV_CONTAINER_TAGS = ("p", "div", "nav")

MERGED_CONTENT_STYLE = """
.gm-merged-sep { margin: 28px 0; border: none; border-top: 1px solid #ccc; }
.gm-merged-label { text-align: center; opacity: 0.75; font-size: 0.9em; margin: 10px 0 18px; }
.gm-merged-label a { margin-left: 8px; font-size: 0.8em; opacity: 0.8; }
"""

DOCUMENT_STYLE = """
body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif; line-height: 1.6; margin: 20px; color: #222; }
article { max-width: 900px; margin: 0 auto; }
h1 { font-size: 2em; margin-bottom: 0.5em; }
img, video { max-width: 100%; height: auto; }
"""

DOCUMENT_TEMPLATE = r"""<!doctype html>
<html lang="{{ language }}">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<title>{{ title or "Merged Article" }}</title>
<style>{{ style | safe }}</style>
</head>
<body><article>{{ body | safe }}</article></body>
</html>
"""


def separator_nodes(page: PageDescriptor, outlet: Outlet) -> list[HtmlElement]:
    """
    Separator and label put in front of a merged page.

    The label links back to the page the content was taken from.
    """
    separator = html.Element("hr")
    separator.set("class", SEPARATOR_CLASS)

    label = html.Element("div")
    label.set("class", LABEL_CLASS)
    label.text = "— {} — ".format(outlet.page_label.format(page_number=page.page_number))

    link = html.Element("a", href=page.url, target="_blank", rel="noopener")
    link.text = outlet.source_link_text
    label.append(link)

    return [separator, label]


def _serialize(nodes: Iterable[HtmlElement]) -> str:
    return "".join(html.tostring(node, encoding="unicode") for node in nodes)


def merged_body_html(merged: MergedDocument, outlet: Outlet) -> str:
    """
    Markup of the merged article: the heading followed by the pages in order.

    Pages after the first one are preceded by a separator and a label.
    """
    parts = [merged.title_html] if merged.title_html else []
    for page, fragment in merged.fragments:
        prefix = _serialize(separator_nodes(page, outlet)) if page.page_number > 1 else ""
        parts.append(prefix + fragment.html)
    return "\n".join(parts)


def render_document(merged: MergedDocument, outlet: Outlet) -> str:
    """
    Render the merged article as a standalone HTML document.
    """
    return Template(DOCUMENT_TEMPLATE, autoescape=True).render(
        language=outlet.language,
        title=merged.title,
        style=DOCUMENT_STYLE + MERGED_CONTENT_STYLE,
        body=merged_body_html(merged, outlet),
    )


def render_markdown(merged: MergedDocument, outlet: Outlet) -> str:
    return html_to_markdown(merged_body_html(merged, outlet)) + "\n"


def _heading_offset(article: HtmlElement, outlet: Outlet) -> int:
    """
    Index of the first child after the leading headings of `article`.
    """
    for index, child in enumerate(article):
        if not isinstance(child.tag, str) or child.tag.lower() not in outlet.heading_tags:
            return index
    return len(article)


def render_in_place(host: HostDocument, merged: MergedDocument, outlet: Outlet) -> HtmlElement:
    """
    Insert the other pages of the article into the host document.

    Pages numbered before the host page go in front of the host content, the rest are appended to the main
    article. The pagination controls are removed afterwards.

    :raises SanitizeNotFound: if the host document has no article container.
    """
    article = select_article(host.tree, outlet)
    if article is None:
        raise SanitizeNotFound(host.url)

    host_number = page_number_from_url(merged.source_url)
    labels: list[HtmlElement] = []

    before, after = [], []
    for page, fragment in merged.fragments:
        if page.url == merged.source_url:
            continue
        (before if page.page_number < host_number else after).append((page, fragment))

    if before:
        position = _heading_offset(article, outlet)
        host_page = PageDescriptor(url=merged.source_url, page_number=host_number)
        entries = before + [(host_page, None)]

        for index, (page, fragment) in enumerate(entries):
            head = separator_nodes(page, outlet)
            # The first page starts right after the heading, without a separator
            if index == 0:
                head = head[1:]
            nodes = head + (fragment.nodes() if fragment else [])
            for node in nodes:
                article.insert(position, node)
                position += 1
            labels.append(head[-1])

    for page, fragment in after:
        head = separator_nodes(page, outlet)
        for node in head + fragment.nodes():
            article.append(node)
        labels.append(head[-1])

    logger.debug("Inserted %d pages into %s", len(before) + len(after), host.url)

    remove_pagination_ui(host.tree, outlet, protected=[article, *labels])
    return host.tree


def _encloses(element: HtmlElement, protected: Iterable[HtmlElement]) -> bool:
    for node in protected:
        if node is element or any(ancestor is element for ancestor in node.iterancestors()):
            return True
    return False


def _remove(element: HtmlElement, protected: list[HtmlElement]) -> bool:
    if element.getparent() is None or _encloses(element, protected):
        return False
    element.drop_tree()
    return True


def remove_pagination_ui(tree: HtmlElement, outlet: Outlet, protected: list[HtmlElement] | None = None) -> int:
    """
    Remove pagination controls and "next page" style navigation from the document.

    Elements containing any of the `protected` elements are kept.

    :return: Number of removed elements.
    """
    protected = protected or []
    removed = 0

    for xpath in outlet.pagination_ui_xpaths:
        for element in tree.xpath(xpath):
            removed += _remove(element, protected)

    if outlet.nav_link_pattern is not None:
        for link in tree.xpath("//a"):
            if not outlet.nav_link_pattern.match(link.text_content().strip()):
                continue

            container = next(
                (a for a in link.iterancestors() if isinstance(a.tag, str) and a.tag.lower() in NAV_CONTAINER_TAGS),
                None,
            )
            if container is not None:
                removed += _remove(container, protected)

    logger.debug("Removed %d pagination elements", removed)
    return removed


def default_output_path(merged: MergedDocument, fmt: OutputFormat = "html") -> Path:
    """
    File name for the merged article, derived from the article URL.

    ``https://www.golem.de/news/some-article-2401-1.html`` -> ``some-article-2401-1-merged.html``
    """
    stem = Path(urlsplit(merged.source_url).path).stem or "article"
    suffix = ".md" if fmt == "markdown" else ".html"
    return Path(f"{stem}-merged{suffix}")


def write_output(content: str, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("Wrote merged article into %s", path)
    return path
