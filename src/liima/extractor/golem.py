import re

from structlog import get_logger

from ._common import Outlet, has_class

logger = get_logger(__name__)


class Golem(Outlet):
    name = "Golem.de"
    valid_url = [
        r"https://www.golem.de/news/",
        r"https://golem.de/news/",
    ]
    language = "de"

    # Site specific containers first, generic ones only if the layout changes
    article_xpaths = [
        "//main//article",
        f"//article[{has_class('article')}]",
        "//article",
        f"//*[{has_class('article__body')}]",
        f"//*[{has_class('article-content')}]",
        f"//*[{has_class('content')}]",
        "//*[@id='content']",
    ]

    pagination_list_xpath = f"//*[{has_class('go-pagination__list')}]"
    pagination_link_xpath = f".//a[{has_class('gsnw-link__article-pagination')}] | .//a"

    article_path = re.compile(r"/news/.+-?\d*\.html$", re.IGNORECASE)

    clutter_xpaths = [
        f".//*[{has_class('go-button-bar')}]",
        f".//*[{has_class('go-teaser-block')}]",
        f".//*[{has_class('go-pagination')}]",
        f".//*[{has_class('go-gallery__actions')}]",
    ]

    ad_slot_xpath = f".//*[{has_class('go-ad-slot')}]"

    sponsored_list_xpath = f".//*[{has_class('go-alink-list')}]"
    sponsored_label_xpath = f".//*[{has_class('go-alink__label')}]"
    sponsored_label = "Reklame"

    gallery_xpath = f".//*[{has_class('go-gallery__wrapper')}]"
    inactive_gallery_item_xpath = f".//*[{has_class('go-gallery__item')}][@data-active='false']"

    pagination_ui_xpaths = [
        f"//*[{has_class('go-pagination__list')}]",
        f"//*[{has_class('pagination')}]",
        f"//*[{has_class('paginator')}]",
        f"//nav[{has_class('pagination')}]",
        f"//*[{has_class('page-nav')}]",
        f"//*[{has_class('article-pages')}]",
        f"//*[{has_class('go-pagination')}]",
    ]

    nav_link_pattern = re.compile(r"^(Nächste|Vorherige|Next|Previous|Seite)\b", re.IGNORECASE)

    page_label = "Seite {page_number}"
    source_link_text = "Originalseite"
