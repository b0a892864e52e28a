from typing import Callable, Optional

import pytest
import requests
from requests.utils import get_encoding_from_headers

from liima.extractor import Golem
from liima.merger import MergeContext, Merger
from liima.scraper import FetchError, HostDocument, parse_document
from liima.settings import Settings
from liima.tokens import MemoryTokenStore

ARTICLE_URL = "https://www.golem.de/news/testartikel-ueber-dinge-2401-{page}.html"


def page_url_for(page: int) -> str:
    return ARTICLE_URL.format(page=page)


def golem_page(page: int, pages: int = 3, title: str = "Testartikel", pagination: bool = True) -> str:
    """
    Golem.de article page, modeled after the live markup.
    """
    links = "\n".join(
        f'<li><a class="gsnw-link__article-pagination" href="testartikel-ueber-dinge-2401-{n}.html">{n}</a></li>'
        for n in range(1, pages + 1)
    )
    nav = f"""
    <nav class="go-pagination">
      <ol class="go-pagination__list">{links}</ol>
    </nav>""" if pagination else ""

    next_link = f"""
    <div class="article-footer">
      <p><a href="testartikel-ueber-dinge-2401-{page + 1}.html">Nächste Seite</a></p>
    </div>""" if pagination and page < pages else ""

    return f"""<!DOCTYPE html>
<html lang="de">
<head>
  <meta charset="utf-8">
  <title>{title} - Golem.de</title>
  <meta name="author" content="Erika Mustermann">
  <meta name="description" content="Eine Zusammenfassung">
  <meta property="og:image" content="https://www.golem.de/2401/og.jpg">
  <meta property="article:published_time" content="2024-01-15T10:00:00+01:00">
</head>
<body>
  <header><a href="/">Golem.de</a></header>
  <main>
    <article class="article">
      <h1>{title}</h1>
      <p>Inhalt Seite {page}</p>
      <img src="/2401/bild-{page}.jpg" srcset="/2401/bild-{page}.jpg 1x, /2401/bild-{page}@2x.jpg 2x">
      <div class="go-ad-wrapper"><div class="go-ad-slot">Anzeige</div></div>
      <div class="go-button-bar"><a href="#share">Teilen</a></div>
      {nav}
    </article>
  </main>
  {next_link}
</body>
</html>
"""


def make_response(url: str, body: bytes, status: int = 200, content_type: str = "text/html; charset=utf-8"):
    res = requests.Response()
    res.status_code = status
    res._content = body
    res.url = url
    if content_type:
        res.headers["Content-Type"] = content_type
    res.encoding = get_encoding_from_headers(res.headers)
    return res


class FakeClient:
    """
    Serves pages from memory instead of the network.
    """

    def __init__(self, pages: dict[str, str]):
        self.pages = pages
        self.requested: list[str] = []

    def fetch_document(self, url: str):
        self.requested.append(url)
        if url not in self.pages:
            raise FetchError(url, "HTTP 404", status_code=404)
        return parse_document(self.pages[url], url)

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


@pytest.fixture
def outlet() -> Golem:
    return Golem()


@pytest.fixture
def settings() -> Settings:
    return Settings(MAX_PAGES=30, TRACING_ENABLED=False, REQUEST_RETRIES=0)


@pytest.fixture
def host() -> HostDocument:
    url = page_url_for(1)
    return HostDocument(url=url, tree=parse_document(golem_page(1), url))


@pytest.fixture
def remote_pages() -> dict[str, str]:
    return {page_url_for(n): golem_page(n) for n in (2, 3)}


@pytest.fixture
def token_store() -> MemoryTokenStore:
    return MemoryTokenStore()


@pytest.fixture
def make_merger(settings, outlet, token_store):
    def factory(pages: dict[str, str], prompt: Optional[Callable] = None) -> Merger:
        context = MergeContext(
            settings=settings,
            outlet=outlet,
            client=FakeClient(pages),
            token_store=token_store,
            prompt=prompt,
        )
        return Merger(context)

    return factory
