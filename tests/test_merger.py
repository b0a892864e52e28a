from unittest import mock

import pytest
import requests
from conftest import golem_page, make_response, page_url_for
from lxml import html

from liima.abc import ActionKind, MergeState
from liima.article import PageOutcome
from liima.extractor import SanitizeNotFound, has_class
from liima.merger import MergeContext, MergeError, Merger, NoArticleFound
from liima.scraper import HostDocument, PageClient, ParseError, parse_document


def test_merge_all_pages(make_merger, host, remote_pages):
    merger = make_merger(remote_pages)

    merged = merger.merge(host)

    assert [page.page_number for page in merged.pages] == [1, 2, 3]
    assert merged.merged_count == 3
    assert merged.attempted == 3
    assert merged.title == "Testartikel"
    assert merged.title_html == "<h1>Testartikel</h1>"
    assert merged.source_url == page_url_for(1)
    assert [f"Inhalt Seite {n}" in fragment.html for n, (_, fragment) in enumerate(merged.fragments, 1)] == [True] * 3
    assert merger.state is MergeState.ASSEMBLING


def test_host_page_is_not_fetched(make_merger, host, remote_pages):
    merger = make_merger(remote_pages)

    merger.merge(host)

    assert merger.context.client.requested == [page_url_for(2), page_url_for(3)]


def test_failed_page_is_skipped(make_merger, host, remote_pages, tmp_path):
    del remote_pages[page_url_for(2)]
    merger = make_merger(remote_pages)

    result = merger.run(ActionKind.MERGE_TO_DOCUMENT, host, output=tmp_path / "merged.html")

    assert [page.page_number for page in result.document.pages] == [1, 3]
    assert result.document.attempted == 3
    assert result.message == "Merged 2 page(s)."
    assert "Inhalt Seite 3" in result.output.read_text(encoding="utf-8")


def test_iter_pages_reports_outcomes(make_merger, host, remote_pages):
    remote_pages[page_url_for(3)] = "<html><body><article><h1>Nur Titel</h1></article></body></html>"
    remote_pages[page_url_for(4)] = "<html><body><div>Kein Artikel</div></body></html>"
    merger = make_merger(remote_pages)

    pages = merger.discover(HostDocument(url=host.url, tree=parse_document(golem_page(1, pages=5), host.url)))
    results = list(merger.iter_pages(host, pages))

    assert [result.outcome for result in results] == [
        PageOutcome.MERGED,
        PageOutcome.MERGED,
        PageOutcome.EMPTY,
        PageOutcome.FAILED,
        PageOutcome.FAILED,
    ]
    assert results[4].error.status_code == 404


@pytest.fixture
def served(monkeypatch):
    """
    Canned responses for the real page client.
    """
    responses = {}

    def get(self, url, **kwargs):
        if url not in responses:
            return make_response(url, b"Not found", status=404, content_type="text/plain")
        return responses[url]

    monkeypatch.setattr(requests.Session, "get", get)
    return responses


@pytest.fixture
def http_merger(settings, outlet, token_store):
    with PageClient(page_url_for(1), settings) as client:
        yield Merger(MergeContext(settings=settings, outlet=outlet, client=client, token_store=token_store))


def test_unusable_pages_are_skipped(http_merger, served, host, tmp_path):
    served[page_url_for(2)] = make_response(page_url_for(2), b"<html><body><div>Kein Artikel</div></body></html>")
    served[page_url_for(3)] = make_response(page_url_for(3), b'{"page": 3}', content_type="application/json")

    result = http_merger.run(ActionKind.MERGE_TO_DOCUMENT, host, output=tmp_path / "merged.html")

    assert result.message == "Merged 1 page(s)."
    assert [page.page_number for page in result.document.pages] == [1]
    assert result.document.attempted == 3
    assert "Inhalt Seite 1" in result.output.read_text(encoding="utf-8")


def test_unusable_page_outcomes(http_merger, served, host):
    served[page_url_for(2)] = make_response(page_url_for(2), b"<html><body><div>Kein Artikel</div></body></html>")
    served[page_url_for(3)] = make_response(page_url_for(3), b'{"page": 3}', content_type="application/json")

    results = list(http_merger.iter_pages(host, http_merger.discover(host)))

    assert [result.outcome for result in results] == [PageOutcome.MERGED, PageOutcome.FAILED, PageOutcome.FAILED]
    assert isinstance(results[1].error, SanitizeNotFound)
    assert isinstance(results[2].error, ParseError)


def test_page_with_unknown_charset_is_skipped(http_merger, served, host):
    served[page_url_for(2)] = make_response(
        page_url_for(2), golem_page(2).encode("utf-8"), content_type="text/html; charset=x-bogus-charset"
    )
    served[page_url_for(3)] = make_response(page_url_for(3), golem_page(3).encode("utf-8"))

    merged = http_merger.merge(host)

    assert [page.page_number for page in merged.pages] == [1, 3]
    assert merged.merged_count == 2
    assert "Inhalt Seite 3" in merged.fragments[1][1].html


def test_iter_pages_is_lazy(make_merger, host, remote_pages):
    merger = make_merger(remote_pages)
    pages = merger.discover(host)

    results = merger.iter_pages(host, pages)
    next(results)

    assert merger.context.client.requested == []
    next(results)
    assert merger.context.client.requested == [page_url_for(2)]


def test_no_article_is_fatal(make_merger, remote_pages):
    url = page_url_for(1)
    host = HostDocument(url=url, tree=parse_document("<html><body><div>Layout geändert</div></body></html>", url))
    merger = make_merger(remote_pages)

    with pytest.raises(NoArticleFound) as exc_info:
        merger.merge(host)

    assert isinstance(exc_info.value, MergeError)
    assert merger.context.client.requested == []


def test_page_limit(make_merger, host, settings):
    settings.MAX_PAGES = 2
    pages = {page_url_for(n): golem_page(n, pages=5) for n in range(2, 6)}
    merger = make_merger(pages)

    host = HostDocument(url=host.url, tree=parse_document(golem_page(1, pages=5), host.url))
    merged = merger.merge(host)

    assert [page.page_number for page in merged.pages] == [1, 2]
    assert merger.context.client.requested == [page_url_for(2)]


def test_merge_from_later_page(make_merger, remote_pages):
    url = page_url_for(2)
    host = HostDocument(url=url, tree=parse_document(golem_page(2), url))
    remote_pages[page_url_for(1)] = golem_page(1)
    merger = make_merger(remote_pages)

    merged = merger.merge(host)

    assert [page.page_number for page in merged.pages] == [1, 2, 3]
    assert merger.context.client.requested == [page_url_for(1), page_url_for(3)]


def test_run_in_place(make_merger, host, remote_pages, tmp_path):
    output = tmp_path / "merged.html"
    merger = make_merger(remote_pages)

    result = merger.run(ActionKind.MERGE_IN_PLACE, host, output=output)

    assert result.output == output
    assert result.message == "Merged 3 page(s)."
    assert merger.state is MergeState.DONE

    document = html.fromstring(output.read_bytes())
    article = document.xpath("//main/article")[0]
    text = article.text_content()
    assert text.index("Inhalt Seite 1") < text.index("Inhalt Seite 2") < text.index("Inhalt Seite 3")
    assert len(article.xpath(f".//hr[{has_class('gm-merged-sep')}]")) == 2
    assert not document.xpath(f"//*[{has_class('go-pagination__list')}]")
    assert not document.xpath(f"//*[{has_class('go-pagination')}]")
    assert "Nächste Seite" not in document.text_content()


def test_run_document(make_merger, host, remote_pages, tmp_path):
    output = tmp_path / "merged.html"
    merger = make_merger(remote_pages)

    result = merger.run(ActionKind.MERGE_TO_DOCUMENT, host, output=output)

    content = output.read_text(encoding="utf-8")
    assert content.startswith("<!doctype html>")
    assert "<title>Testartikel</title>" in content
    assert content.count('class="gm-merged-label"') == 2
    assert result.merged_count == 3
    # The host document is left alone
    assert host.tree.xpath(f"//*[{has_class('go-pagination__list')}]")


def test_run_markdown(make_merger, host, remote_pages, tmp_path):
    output = tmp_path / "merged.md"
    merger = make_merger(remote_pages)

    merger.run(ActionKind.MERGE_TO_DOCUMENT, host, output=output, fmt="markdown")

    content = output.read_text(encoding="utf-8")
    assert content.startswith("# Testartikel")
    assert "Inhalt Seite 3" in content


def test_run_publish(make_merger, host, remote_pages, token_store):
    token_store.set("t0ken")
    merger = make_merger(remote_pages)

    with mock.patch("liima.merger.publish", return_value="01abc") as publish:
        result = merger.run(ActionKind.MERGE_PUBLISH, host)

    assert result.remote_id == "01abc"
    assert result.output is None
    payload, store, prompt, _ = publish.call_args.args
    assert payload.url == page_url_for(1)
    assert store is token_store


def test_run_rejects_settings_action(make_merger, host, remote_pages):
    merger = make_merger(remote_pages)

    with pytest.raises(ValueError):
        merger.run(ActionKind.OPEN_SETTINGS, host)

    assert merger.state is MergeState.IDLE


def test_context_create(settings, token_store):
    context = MergeContext.create(page_url_for(1), settings, token_store=token_store)

    assert context.outlet.name == "Golem.de"
    assert isinstance(context.client, PageClient)
    assert context.token_store is token_store
    context.client.close()


def test_context_create_unknown_site(settings):
    with pytest.raises(ValueError):
        MergeContext.create("https://example.com/news/a-2.html", settings)
