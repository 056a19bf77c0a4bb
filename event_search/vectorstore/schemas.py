"""
Request and response shapes for semantic search.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SearchRequest(BaseModel):
    """
    A structured semantic search request.

    All filters are optional and combined with AND. `categories` accepts a
    list for compatibility with callers that send several kinds, but only
    the first value is applied as an equality filter.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    query_text: str | None = Field(
        default=None,
        alias="search",
        description="Text to embed as the query (empty string if absent)",
    )
    limit: int | None = Field(
        default=None,
        ge=1,
        le=10000,
        description="Maximum ids to return after relevance filtering",
    )
    author: str | None = Field(default=None, description="Exact author filter")
    categories: list[int] | None = Field(
        default=None,
        alias="event_kinds",
        description="Category filter; only the first entry is used",
    )
    min_created_at: int | None = Field(default=None, description="Inclusive lower time bound")
    max_created_at: int | None = Field(default=None, description="Inclusive upper time bound")
    language: str | None = Field(default=None, description="Accepted for compatibility, unused")

    @field_validator("limit", mode="before")
    @classmethod
    def parse_limit(cls, value: object) -> object:
        """Accept numeric strings, as sent in query strings."""
        if isinstance(value, str):
            value = value.strip()
            return int(value) if value else None
        return value

    @model_validator(mode="after")
    def check_time_range(self) -> "SearchRequest":
        if (
            self.min_created_at is not None
            and self.max_created_at is not None
            and self.min_created_at > self.max_created_at
        ):
            raise ValueError("min_created_at must not exceed max_created_at")
        return self

    @property
    def query(self) -> str:
        """Query text, defaulting to the empty string."""
        return self.query_text or ""

    @property
    def category_filter(self) -> int | None:
        """First requested category, used as a single-value filter."""
        if not self.categories:
            return None
        return self.categories[0]


class SearchResponse(BaseModel):
    """Ids ordered by descending relevance."""

    event_ids: list[str] = Field(default_factory=list)
    total_found: int = 0

    @classmethod
    def empty(cls) -> "SearchResponse":
        return cls(event_ids=[], total_found=0)


class ScoredResult(BaseModel):
    """One search hit with its normalized relevance."""

    event_id: str
    relevance_score: float = Field(..., ge=0.0, le=1.0)
    raw_score: float = Field(..., description="Distance or similarity reported by the backend")


class ScoredSearchResponse(BaseModel):
    """Scored hits ordered by descending relevance."""

    results: list[ScoredResult] = Field(default_factory=list)
    total_found: int = 0

    @classmethod
    def empty(cls) -> "ScoredSearchResponse":
        return cls(results=[], total_found=0)

    def to_response(self) -> SearchResponse:
        """Drop the scores."""
        return SearchResponse(
            event_ids=[r.event_id for r in self.results],
            total_found=self.total_found,
        )
