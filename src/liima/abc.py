from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


class ActionKind(str, Enum):
    """
    Actions a host can invoke.

    - `merge-in-place`: Merge all pages into the loaded document.
    - `merge-to-document`: Merge all pages into a new standalone document.
    - `merge-publish`: Merge all pages and save the result into Readwise Reader.
    - `open-settings`: Manage the stored Readwise access token.
    """
    MERGE_IN_PLACE = "merge-in-place"
    MERGE_TO_DOCUMENT = "merge-to-document"
    MERGE_PUBLISH = "merge-publish"
    OPEN_SETTINGS = "open-settings"

    @property
    def is_merge(self) -> bool:
        return self is not ActionKind.OPEN_SETTINGS


class MergeState(str, Enum):
    """
    Progress of a single merge invocation.

    ``IDLE -> DISCOVERING -> FETCHING -> ASSEMBLING -> DISPATCHING -> DONE``
    """
    IDLE = "idle"
    DISCOVERING = "discovering"
    FETCHING = "fetching"
    ASSEMBLING = "assembling"
    DISPATCHING = "dispatching"
    DONE = "done"


class PageDescriptor(BaseModel):
    """
    One page of a paginated article.
    """
    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Absolute URL of the page.")
    page_number: PositiveInt = Field(1, description="Ordinal of the page, 1 being the canonical first page.")

    def __str__(self):
        return f"{self.url} (page {self.page_number})"
