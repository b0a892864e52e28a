"""
Saving merged articles into Readwise Reader.

..seealso:: https://readwise.io/reader_api
"""
from typing import Optional

import requests
from lxml.html import HtmlElement
from opentelemetry import trace
from pydantic import BaseModel, ConfigDict, Field
from requests.adapters import HTTPAdapter
from requests.exceptions import RequestException
from structlog import get_logger
from urllib3 import Retry

from .article import MergedDocument
from .extractor import Outlet
from .renderer import merged_body_html
from .scraper import HostDocument
from .settings import Settings, get_settings
from .settings.readwise import ReadwiseSettings
from .tokens import TokenPrompt, TokenStore, prompt_for_token

logger = get_logger(__name__)
tracer = trace.get_tracer(__name__)


class PublishError(Exception):
    """
    Base class for failures of saving a document into Readwise.
    """


class PublishUnauthorized(PublishError):
    def __init__(self, message: str = "Readwise token required."):
        super().__init__(message)


class PublishRejected(PublishError):
    """
    Raised when the Reader API doesn't accept the document.
    """

    def __init__(self, status: Optional[int], text: str):
        super().__init__(f"Readwise API error ({status}): {text}")
        self.status = status
        self.text = text


class PublishPayload(BaseModel):
    """
    Document as sent to the Reader API `save` endpoint.
    """
    model_config = ConfigDict(frozen=True)

    url: str
    html: str
    should_clean_html: bool = True
    title: str = "Merged Article"
    author: Optional[str] = None
    summary: Optional[str] = None
    image_url: Optional[str] = None
    published_date: Optional[str] = None
    category: str = "article"
    saved_using: Optional[str] = None
    location: str = "new"
    tags: list[str] = Field(default_factory=list)


def _meta(tree: HtmlElement, attribute: str, value: str) -> Optional[str]:
    for content in tree.xpath(f"//meta[@{attribute}=$value]/@content", value=value):
        if content.strip():
            return content.strip()
    return None


def build_payload(merged: MergedDocument, host: HostDocument, outlet: Outlet,
                  settings: Optional[ReadwiseSettings] = None) -> PublishPayload:
    """
    Build the Reader document from the merged article and the metadata of the host page.
    """
    settings = settings or get_settings().readwise
    tree = host.tree

    return PublishPayload(
        url=merged.source_url,
        html=f"<article>{merged_body_html(merged, outlet)}</article>",
        title=merged.title or "Merged Article",
        author=_meta(tree, "name", "author"),
        summary=_meta(tree, "name", "description"),
        image_url=_meta(tree, "property", "og:image"),
        published_date=_meta(tree, "property", "article:published_time"),
        category=settings.category,
        saved_using=settings.saved_using,
        location=settings.location,
        tags=list(settings.tags),
    )


class ReadwiseClient(requests.Session):
    """
    Session for the Reader API.
    """

    def __init__(self, token: str, settings: Optional[Settings] = None):
        super().__init__()
        settings = settings or get_settings()
        self.config = settings.readwise

        retries = Retry(
            total=settings.REQUEST_RETRIES,
            backoff_factor=0.5,
            status_forcelist=[500, 502, 503, 504]
        )

        self.mount('http://', HTTPAdapter(max_retries=retries))
        self.mount('https://', HTTPAdapter(max_retries=retries))

        self.headers.update({
            "User-Agent": settings.BOT_USER_AGENT,
            "Authorization": f"Token {token}",
            "Accept": "application/json",
        })

    def save(self, payload: PublishPayload) -> Optional[str]:
        """
        Save the document.

        :return: Id of the saved document.
        :raises PublishRejected: if the document couldn't be saved.
        """
        try:
            res = self.post(
                str(self.config.url),
                json=payload.model_dump(mode="json"),
                timeout=self.config.timeout,
            )
        except RequestException as e:
            raise PublishRejected(None, str(e)) from e

        if not res.ok:
            logger.debug("Reader API responded with %d", res.status_code, extra={"text": res.text[:500]})
            raise PublishRejected(res.status_code, res.text)

        try:
            doc_id = res.json().get("id")
        except ValueError:
            logger.warning("Reader API response is not JSON: %r", res.text[:200])
            return None

        return str(doc_id) if doc_id is not None else None


def get_token(store: TokenStore, prompt: Optional[TokenPrompt] = None) -> Optional[str]:
    """
    Stored token, or one asked from the user.
    """
    if token := store.get():
        return token
    return prompt_for_token(store, prompt)


def publish(payload: PublishPayload, store: TokenStore, prompt: Optional[TokenPrompt] = None,
            settings: Optional[Settings] = None) -> Optional[str]:
    """
    Save the document into Readwise Reader.

    :raises PublishUnauthorized: if no token is stored and none is given. Nothing is sent in that case.
    :raises PublishRejected: if the Reader API refuses the document.
    """
    token = get_token(store, prompt)
    if not token:
        raise PublishUnauthorized()

    with tracer.start_as_current_span("readwise.publish") as span:
        span.set_attribute("url.full", payload.url)

        with ReadwiseClient(token, settings) as client:
            doc_id = client.save(payload)

        span.set_attribute("readwise.document_id", doc_id or "")

    logger.info("Saved %s into Readwise", payload.url, extra={"id": doc_id})
    return doc_id
