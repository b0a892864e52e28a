from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from lxml import html
from lxml.html import HtmlElement
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .abc import ActionKind, PageDescriptor


class ArticleFragment(BaseModel):
    """
    Sanitized content of a single page.

    The markup is stored serialized, so a fragment can't be changed after it has been produced. Use
    :meth:`nodes` to get elements that can be inserted into another tree.
    """
    model_config = ConfigDict(frozen=True)

    html: str = Field("", description="Serialized child elements of the article container.")
    element_count: int = Field(0, ge=0, description="Number of top-level elements in the fragment.")

    @classmethod
    def from_nodes(cls, nodes: Iterable[HtmlElement]) -> "ArticleFragment":
        nodes = list(nodes)
        markup = "".join(
            html.tostring(node, encoding="unicode", with_tail=False)
            for node in nodes
        )
        return cls(html=markup, element_count=len(nodes))

    @property
    def is_empty(self) -> bool:
        return self.element_count == 0

    def nodes(self) -> list[HtmlElement]:
        """
        Fresh copies of the fragment elements.
        """
        if not self.html:
            return []
        return [node for node in html.fragments_fromstring(self.html) if isinstance(node, HtmlElement)]


class PageOutcome(str, Enum):
    MERGED = "merged"
    EMPTY = "empty"
    FAILED = "failed"


class PageResult(BaseModel):
    """
    Result of fetching and sanitizing a single page.

    Either :attr:`fragment` or :attr:`error` is set, neither when the page had no content.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    page: PageDescriptor
    fragment: Optional[ArticleFragment] = None
    error: Optional[Exception] = None

    @property
    def outcome(self) -> PageOutcome:
        if self.error is not None:
            return PageOutcome.FAILED
        if self.fragment is None:
            return PageOutcome.EMPTY
        return PageOutcome.MERGED


class MergedDocument(BaseModel):
    """
    Article stitched together from its pages.
    """
    title: str = Field("", description="Text of the article heading.")
    title_html: str = Field("", description="Markup of the article heading.")
    source_url: str = Field(..., description="URL of the page the merge was started from.")

    fragments: list[tuple[PageDescriptor, ArticleFragment]] = Field(default_factory=list)
    attempted: int = Field(0, ge=0, description="Number of pages that were tried.")

    @field_validator("fragments")
    @classmethod
    def check_fragments_ordered(cls, v):
        seen = set()
        for page, _ in v:
            if page.url in seen:
                raise ValueError(f"Duplicate fragment for {page.url!r}")
            seen.add(page.url)

        # Stable sort keeps the discovery order for pages with the same number
        return sorted(v, key=lambda entry: entry[0].page_number)

    @computed_field
    @property
    def merged_count(self) -> int:
        return len(self.fragments)

    @property
    def pages(self) -> list[PageDescriptor]:
        return [page for page, _ in self.fragments]


class MergeResult(BaseModel):
    """
    Outcome of a merge action.
    """
    action: ActionKind
    document: MergedDocument

    output: Optional[Path] = Field(None, description="File the merged document was written into.")
    remote_id: Optional[str] = Field(None, description="Identifier of the document saved by the remote service.")

    @computed_field
    @property
    def merged_count(self) -> int:
        return self.document.merged_count

    @property
    def message(self) -> str:
        return f"Merged {self.merged_count} page(s)."
