import pytest
from conftest import golem_page, page_url_for

from liima.discovery import (
    ArticleLinksDiscoverer,
    PaginationListDiscoverer,
    discover_page_urls,
    has_pagination,
    order_pages,
    page_number_from_url,
)
from liima.scraper import parse_document


@pytest.mark.parametrize("url, expected", [
    (None, 1),
    ("", 1),
    ("https://www.golem.de/news/foo.html", 1),
    ("https://www.golem.de/news/foo-bar-3.html", 3),
    ("https://www.golem.de/news/foo-bar-3.HTML", 3),
    ("https://www.golem.de/news/123456.html", 1),
    ("https://www.golem.de/news/article-123456.html", 1),
    ("https://www.golem.de/news/foo-bar-999.html", 999),
    ("https://www.golem.de/news/foo-bar-1000.html", 1),
    ("https://www.golem.de/news/foo-bar-0.html", 1),
    ("https://www.golem.de/news/foo-bar-3.html?page=2", 1),
    ("https://www.golem.de/news/testartikel-ueber-dinge-2401-2.html", 2),
])
def test_page_number_from_url(url, expected):
    assert page_number_from_url(url) == expected


def test_page_number_needs_hyphen_before_suffix():
    # Host and directories have no hyphen, so the number is an id
    assert page_number_from_url("https://golem.de/news/x-5.html") == 1


def test_pagination_list_discovery(outlet):
    url = page_url_for(1)
    document = parse_document(golem_page(1, pages=3), url)

    urls = PaginationListDiscoverer(outlet).discover(document, url)

    assert urls == [page_url_for(1), page_url_for(2), page_url_for(3)]


def test_pagination_list_skips_bad_links(outlet):
    url = page_url_for(1)
    document = parse_document(f"""
        <html><body><article>
          <ol class="go-pagination__list">
            <li><a href="{page_url_for(2)}#top">2</a></li>
            <li><a href="{page_url_for(2)}">2</a></li>
            <li><a href="mailto:leser@golem.de">Mail</a></li>
            <li><a href="javascript:void(0)">JS</a></li>
            <li><a>no href</a></li>
          </ol>
        </article></body></html>
    """, url)

    assert PaginationListDiscoverer(outlet).discover(document, url) == [page_url_for(2)]


def test_pagination_list_skips_unencodable_host(outlet):
    url = page_url_for(1)
    bad_host = "a" * 64 + ".golem.de"
    document = parse_document(f"""
        <html><body><article>
          <ol class="go-pagination__list">
            <li><a href="{page_url_for(1)}">1</a></li>
            <li><a href="https://{bad_host}/news/testartikel-ueber-dinge-2401-2.html">2</a></li>
            <li><a href="{page_url_for(3)}">3</a></li>
          </ol>
        </article></body></html>
    """, url)

    assert PaginationListDiscoverer(outlet).discover(document, url) == [page_url_for(1), page_url_for(3)]
    assert has_pagination(document, url, outlet)


def test_article_links_skip_unencodable_host(outlet):
    url = page_url_for(1)
    bad_host = "a" * 64 + ".golem.de"
    document = parse_document(f"""
        <html><body><article>
          <p><a href="https://{bad_host}/news/testartikel-ueber-dinge-2401-2.html">kaputt</a></p>
          <p><a href="testartikel-ueber-dinge-2401-3.html">weiter</a></p>
        </article></body></html>
    """, url)

    assert discover_page_urls(document, url, outlet) == [page_url_for(3)]


def test_empty_pagination_list(outlet):
    url = page_url_for(1)
    document = parse_document('<html><body><article><ol class="go-pagination__list"></ol></article></body></html>', url)

    assert PaginationListDiscoverer(outlet).containers(document)
    assert not has_pagination(document, url, outlet)


def test_no_pagination(outlet):
    url = "https://www.golem.de/news/einzelseite.html"
    document = parse_document(golem_page(1, pagination=False), url)

    assert PaginationListDiscoverer(outlet).discover(document, url) == []
    assert not has_pagination(document, url, outlet)


def test_has_pagination(outlet):
    url = page_url_for(1)
    assert has_pagination(parse_document(golem_page(1), url), url, outlet)


def test_article_links_fallback(outlet):
    url = page_url_for(1)
    document = parse_document(f"""
        <html><body><article>
          <p><a href="testartikel-ueber-dinge-2401-2.html">weiter</a></p>
          <p><a href="/news/anderer-artikel-2401-7.html">Anderer Artikel</a></p>
          <p><a href="https://www.example.com/news/fremd-2.html">Fremd</a></p>
          <p><a href="/specials/">Specials</a></p>
          <p><a href="/news/bild.jpg">Bild</a></p>
        </article></body></html>
    """, url)

    assert PaginationListDiscoverer(outlet).discover(document, url) == []

    urls = ArticleLinksDiscoverer(outlet).discover(document, url)
    assert urls == [page_url_for(2), "https://www.golem.de/news/anderer-artikel-2401-7.html"]

    assert discover_page_urls(document, url, outlet) == urls


def test_discover_prefers_pagination_list(outlet):
    url = page_url_for(1)
    html = golem_page(1, pages=2).replace(
        "<header>", '<header><a href="/news/anderer-artikel-2401-7.html">Anderer</a>'
    )
    document = parse_document(html, url)

    assert discover_page_urls(document, url, outlet) == [page_url_for(1), page_url_for(2)]


def test_discover_nothing(outlet):
    url = "https://www.golem.de/news/einzelseite.html"
    document = parse_document("<html><body><article><p>Text</p></article></body></html>", url)

    assert discover_page_urls(document, url, outlet) == []


def test_order_pages_includes_start_url():
    pages = order_pages([page_url_for(3), page_url_for(2)], page_url_for(1), max_pages=30)

    assert [page.url for page in pages] == [page_url_for(1), page_url_for(2), page_url_for(3)]
    assert [page.page_number for page in pages] == [1, 2, 3]


def test_order_pages_deduplicates():
    pages = order_pages([page_url_for(2), page_url_for(1), page_url_for(2)], page_url_for(1), max_pages=30)

    urls = [page.url for page in pages]
    assert urls == [page_url_for(1), page_url_for(2)]


def test_order_pages_ties_keep_discovery_order():
    start = "https://www.golem.de/news/start.html"
    other = "https://www.golem.de/news/anderer.html"

    pages = order_pages([other], start, max_pages=30)

    assert [page.url for page in pages] == [start, other]
    assert all(page.page_number == 1 for page in pages)


def test_order_pages_truncates():
    urls = [page_url_for(n) for n in range(1, 11)]

    pages = order_pages(urls, page_url_for(1), max_pages=4)

    assert [page.page_number for page in pages] == [1, 2, 3, 4]


def test_order_pages_host_is_later_page():
    pages = order_pages([page_url_for(1), page_url_for(2), page_url_for(3)], page_url_for(2), max_pages=30)

    assert [page.page_number for page in pages] == [1, 2, 3]
