"""
Canonical item schema for the event-search pipeline.

ContentItem is what an external source hands to the core, either through
the ingestion queue or directly to SemanticSearchService. It is immutable
and consumed once.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ContentItem(BaseModel):
    """
    A content item to be embedded and indexed.

    The id is the natural key: re-inserting an existing id is a no-op.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Unique, caller-assigned identifier",
    )
    author: str = Field(
        ...,
        validation_alias=AliasChoices("author", "pubkey"),
        description="Author identifier (e.g., public key)",
    )
    created_at: int = Field(
        ...,
        description="Creation time as unix seconds",
        examples=[1700000000],
    )
    category: int = Field(
        ...,
        validation_alias=AliasChoices("category", "kind"),
        description="Integer category (event kind)",
    )
    tags: list[list[str]] = Field(
        default_factory=list,
        description="Ordered tag tuples, e.g. [['p', '<pubkey>'], ['t', 'bitcoin']]",
    )
    content: str = Field(default="", description="Text that gets embedded")

    # Carried from the source but never persisted
    signature: str | None = Field(
        default=None,
        alias="sig",
        description="Source signature, passed through untouched",
    )
