from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

import requests
from lxml import etree, html
from lxml.html import HtmlElement
from opentelemetry import trace
from requests.adapters import HTTPAdapter
from requests.exceptions import RequestException
from structlog import get_logger
from urllib3 import Retry

from .extractor import Outlet, get_extractors
from .settings import Settings, get_settings
from .utils import is_same_origin, origin

logger = get_logger(__name__)
tracer = trace.get_tracer(__name__)

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


class FetchError(RequestException):
    """
    Raised when a page can't be retrieved.
    """

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(f"Fetching {url} failed: {reason}", **kwargs)
        self.url = url
        self.status_code = status_code


class ParseError(ValueError):
    """
    Raised when a response body is not a parseable HTML document.
    """

    def __init__(self, url: str, reason: str):
        super().__init__(f"Parsing {url} failed: {reason}")
        self.url = url


@dataclass
class HostDocument:
    """
    The page a merge is started from.

    It's read for discovery and extraction, and modified only when the pages are merged in place.
    """
    url: str
    tree: HtmlElement

    def to_html(self) -> str:
        return "<!DOCTYPE html>\n" + html.tostring(self.tree, encoding="unicode")


@lru_cache(maxsize=128)
def get_extractor(url: str) -> Outlet:
    """
    Find the extractor for the given URL.

    :param url: The URL of the article.
    """
    url = str(url)

    for outlet in get_extractors():
        if outlet.matches(url):
            logger.debug("Matched outlet %s for URL %s", outlet.name, url)
            return outlet

    raise ValueError(f"No outlet found for URL {url!r}")


def get_user_agent(settings: Optional[Settings] = None) -> str:
    """
    Return the user-agent string to be used for requests.
    """
    return (settings or get_settings()).BOT_USER_AGENT


def parse_document(content: bytes | str, url: str, encoding: Optional[str] = None) -> HtmlElement:
    """
    Parse page source into a document tree.

    :param encoding: Character set declared by the server, if any.
    :raises ParseError: if the content is empty, not HTML or declared in an unknown encoding.
    """
    if not content or not content.strip():
        raise ParseError(url, "empty document")

    try:
        parser = html.HTMLParser(encoding=encoding) if encoding and isinstance(content, bytes) else None
        return html.document_fromstring(content, parser=parser, base_url=url)
    except LookupError as e:
        raise ParseError(url, f"unknown encoding {encoding!r}") from e
    except (etree.ParserError, ValueError) as e:
        raise ParseError(url, str(e)) from e


def load_document(path: Path, url: str) -> HostDocument:
    """
    Load a locally saved page to be used as the host document.

    :param url: Address the page was saved from.
    """
    return HostDocument(url=url, tree=parse_document(Path(path).read_bytes(), url))


class PageClient(requests.Session):
    """
    Session for fetching the pages of an article.

    Cookies and other credentials are only sent to the origin of the article. Pages elsewhere are fetched with a
    separate, stateless session.
    """

    def __init__(self, origin_url: str, settings: Optional[Settings] = None):
        super().__init__()
        settings = settings or get_settings()

        self.origin = origin(origin_url)
        self.timeout = settings.REQUEST_TIMEOUT

        retries = Retry(
            total=settings.REQUEST_RETRIES,
            backoff_factor=0.5,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET", "HEAD"],
        )
        headers = {
            "User-Agent": get_user_agent(settings),
            "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
        }

        self._anonymous = requests.Session()
        for session in (self, self._anonymous):
            session.mount('http://', HTTPAdapter(max_retries=retries))
            session.mount('https://', HTTPAdapter(max_retries=retries))
            session.headers.update(headers)

        domain = urlsplit(self.origin).hostname
        for name, value in settings.COOKIES.items():
            self.cookies.set(name, value, domain=domain)

    def close(self):
        self._anonymous.close()
        super().close()

    def fetch(self, url: str) -> requests.Response:
        """
        GET the page, failing for anything else than a successful response.

        :raises FetchError: on network errors and unsuccessful responses.
        """
        with tracer.start_as_current_span("fetch_page") as span:
            span.set_attribute("url.full", url)

            same_origin = is_same_origin(url, self.origin)
            session = self if same_origin else self._anonymous
            if not same_origin:
                logger.debug("Fetching cross-origin page %s without credentials", url)

            try:
                res = session.get(url, timeout=self.timeout)
            except RequestException as e:
                raise FetchError(url, str(e)) from e

            span.set_attribute("http.response.status_code", res.status_code)
            if not res.ok:
                logger.debug("Fetching %s failed with %s", url, res.status_code, extra={"text": res.text[:200]})
                raise FetchError(url, f"HTTP {res.status_code}", status_code=res.status_code, response=res)

            return res

    def fetch_document(self, url: str) -> HtmlElement:
        """
        Fetch the page and parse it.

        :raises FetchError: if the page can't be retrieved.
        :raises ParseError: if the page is not HTML.
        """
        res = self.fetch(url)

        content_type = res.headers.get("Content-Type", "")
        mime_type, *params = [p.strip() for p in content_type.split(";")]
        if mime_type and mime_type.lower() not in HTML_CONTENT_TYPES:
            raise ParseError(url, f"unexpected content type {mime_type!r}")

        declared_charset = any(p.lower().startswith("charset=") for p in params)
        return parse_document(res.content, url, encoding=res.encoding if declared_charset else None)

    def load(self, url: str) -> HostDocument:
        """
        Fetch the page a merge is started from.
        """
        return HostDocument(url=url, tree=self.fetch_document(url))
