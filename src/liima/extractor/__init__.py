"""
The extractor module knows the markup of the supported news site: where the article body is, and which parts
of it are not article content.

The site is described by an :class:`Outlet`; :mod:`._processors` applies that description to parsed pages.
"""

from ._common import Outlet, has_class
from ._processors import (
    SanitizeNotFound,
    absolutize_urls,
    cleanup_fragment,
    extract_fragment,
    html_to_markdown,
    select_article,
)
from .golem import Golem


def get_extractors() -> list[Outlet]:
    """
    Buildin extractors, sorted by preference.
    """
    return [Golem()]


__all__ = [
    "Outlet",
    "Golem",
    "SanitizeNotFound",
    "absolutize_urls",
    "cleanup_fragment",
    "extract_fragment",
    "get_extractors",
    "has_class",
    "html_to_markdown",
    "select_article",
]
