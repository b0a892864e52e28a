from typing import Literal

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings


class ReadwiseSettings(BaseSettings):
    """
    Settings for saving merged articles into Readwise Reader.

    ..seealso:: https://readwise.io/reader_api
    """

    url: HttpUrl = Field(
        HttpUrl("https://readwise.io/api/v3/save/"),
        description="Reader API endpoint for saving documents.",
    )
    timeout: int = Field(30, description="Timeout (in seconds) for Reader API requests.")

    saved_using: str = Field(
        "Golem.de Merge Userscript",
        description="Value of the `saved_using` field sent with every document.",
    )
    tags: list[str] = Field(["golem.de"], description="Tags added to saved documents.")
    location: Literal["new", "later", "archive", "feed"] = Field("new", description="Reader location for the document.")
    category: Literal["article", "email", "rss", "highlight", "note", "pdf", "epub", "tweet", "video"] = Field(
        "article",
        description="Reader category for the document.",
    )

    model_config = {
        "env_prefix": "READWISE_",
        "extra": "ignore",
    }
