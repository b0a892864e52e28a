"""
Merging the pages of a paginated article.

A merge discovers the pages from the host document, fetches and sanitizes them one at a time, folds the
fragments into a :class:`MergedDocument` and hands it over to a single output action.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from lxml import html
from opentelemetry import trace
from structlog import get_logger

from .abc import ActionKind, MergeState, PageDescriptor
from .article import MergedDocument, MergeResult, PageOutcome, PageResult
from .discovery import discover_page_urls, order_pages
from .extractor import Outlet, SanitizeNotFound, extract_fragment, select_article
from .readwise import build_payload, publish
from .renderer import (
    OutputFormat,
    default_output_path,
    render_document,
    render_in_place,
    render_markdown,
    write_output,
)
from .scraper import FetchError, HostDocument, PageClient, ParseError, get_extractor
from .settings import Settings, get_settings
from .tokens import TokenPrompt, TokenStore, create_token_store
from .utils import InvalidUrl, page_url

logger = get_logger(__name__)
tracer = trace.get_tracer(__name__)


class MergeError(Exception):
    """
    Base class for failures that stop a merge.
    """


class NoArticleFound(MergeError):
    def __init__(self, url: str):
        super().__init__(f"Could not find the main article element in {url}. The page layout might have changed.")
        self.url = url


@dataclass
class MergeContext:
    """
    Collaborators of a merge, created once per session.
    """
    settings: Settings
    outlet: Outlet
    client: PageClient
    token_store: TokenStore
    prompt: Optional[TokenPrompt] = field(default=None)

    @classmethod
    def create(cls, url: str, settings: Optional[Settings] = None, prompt: Optional[TokenPrompt] = None,
               token_store: Optional[TokenStore] = None) -> "MergeContext":
        """
        :raises ValueError: if the URL doesn't belong to a supported site.
        """
        settings = settings or get_settings()
        return cls(
            settings=settings,
            outlet=get_extractor(url),
            client=PageClient(url, settings),
            token_store=token_store or create_token_store(settings),
            prompt=prompt,
        )


def canonical_url(url: str) -> str:
    try:
        return page_url(url, url)
    except InvalidUrl:
        return url


class Merger:
    """
    Drives a single merge, from discovery to the output action.
    """

    def __init__(self, context: MergeContext):
        self.context = context
        self.state = MergeState.IDLE

    @property
    def outlet(self) -> Outlet:
        return self.context.outlet

    def discover(self, host: HostDocument) -> list[PageDescriptor]:
        """
        Pages of the article in reading order, the host page included.

        :raises NoArticleFound: if the host document has no article container.
        """
        self.state = MergeState.DISCOVERING

        if select_article(host.tree, self.outlet) is None:
            raise NoArticleFound(host.url)

        urls = discover_page_urls(host.tree, host.url, self.outlet)
        pages = order_pages(urls, canonical_url(host.url), self.context.settings.MAX_PAGES)
        logger.debug("Pages to merge: %s", ", ".join(str(page) for page in pages))
        return pages

    def iter_pages(self, host: HostDocument, pages: list[PageDescriptor]) -> Iterator[PageResult]:
        """
        Fetch and sanitize the pages one by one.

        Failing pages are logged and yielded with their error. The host page is not fetched again.
        """
        self.state = MergeState.FETCHING
        host_url = canonical_url(host.url)

        for page in pages:
            try:
                if page.url == host_url:
                    document, base_url = host.tree, host.url
                else:
                    document, base_url = self.context.client.fetch_document(page.url), page.url

                fragment = extract_fragment(document, self.outlet, base_url)
            except (FetchError, ParseError, SanitizeNotFound) as e:
                logger.warning("Failed to fetch or parse page %s: %s", page, e, exc_info=e)
                yield PageResult(page=page, error=e)
                continue

            if fragment.is_empty:
                logger.warning("No article content found on page %s", page)
                yield PageResult(page=page)
                continue

            yield PageResult(page=page, fragment=fragment)

    def merge(self, host: HostDocument) -> MergedDocument:
        """
        Merge all pages of the article into a single document.

        :raises NoArticleFound: if the host document has no article container.
        """
        with tracer.start_as_current_span("merge") as span:
            span.set_attribute("url.full", host.url)

            pages = self.discover(host)
            span.set_attribute("liima.pages.discovered", len(pages))

            fragments = []
            for result in self.iter_pages(host, pages):
                if result.outcome is PageOutcome.MERGED:
                    fragments.append((result.page, result.fragment))

            self.state = MergeState.ASSEMBLING

            title_html, title = "", ""
            if headings := host.tree.xpath(self.outlet.title_xpath):
                heading = headings[0]
                title_html = html.tostring(heading, encoding="unicode", with_tail=False)
                title = heading.text_content().strip()

            merged = MergedDocument(
                title=title,
                title_html=title_html,
                source_url=canonical_url(host.url),
                fragments=fragments,
                attempted=len(pages),
            )
            span.set_attribute("liima.pages.merged", merged.merged_count)

        if merged.merged_count < merged.attempted:
            logger.info("Skipped %d of %d pages", merged.attempted - merged.merged_count, merged.attempted)
        return merged

    def run(self, action: ActionKind, host: HostDocument, output: Optional[Path] = None,
            fmt: OutputFormat = "html") -> MergeResult:
        """
        Merge the article and deliver it with the chosen action.

        :param output: File to write into. Derived from the article URL if not given.
        :param fmt: Format of the standalone document.
        :raises MergeError: if the article can't be merged.
        :raises PublishError: if saving into Readwise fails.
        """
        if not action.is_merge:
            raise ValueError(f"{action.value} is not a merge action")

        merged = self.merge(host)

        self.state = MergeState.DISPATCHING
        result = MergeResult(action=action, document=merged)

        match action:
            case ActionKind.MERGE_IN_PLACE:
                render_in_place(host, merged, self.outlet)
                result.output = write_output(host.to_html(), output or default_output_path(merged))
            case ActionKind.MERGE_TO_DOCUMENT:
                if fmt == "markdown":
                    content = render_markdown(merged, self.outlet)
                else:
                    content = render_document(merged, self.outlet)
                result.output = write_output(content, output or default_output_path(merged, fmt))
            case ActionKind.MERGE_PUBLISH:
                payload = build_payload(merged, host, self.outlet, self.context.settings.readwise)
                result.remote_id = publish(
                    payload,
                    self.context.token_store,
                    self.context.prompt,
                    self.context.settings,
                )

        self.state = MergeState.DONE
        logger.info(result.message)
        return result
