"""
Error types shared by vector store adapters and the search service.

Adapters raise raw backend errors (or the types below) and never swallow
them. The service layer decides which conditions are soft successes by
matching against the ErrorVocabulary each adapter advertises.
"""

from dataclasses import dataclass


class VectorStoreError(Exception):
    """Base class for vector store failures raised by adapters."""


class DuplicateItemError(VectorStoreError):
    """
    One or more item ids already exist in the store.

    Raised after any non-duplicate items in the same call have been written,
    so a batch may be partially applied.

    Attributes:
        item_ids: Ids that were skipped because they already exist
    """

    def __init__(self, item_ids: list[str]):
        self.item_ids = list(item_ids)
        super().__init__(
            f"{len(self.item_ids)} item(s) already exists: {', '.join(self.item_ids[:5])}"
        )


class DimensionMismatchError(ValueError):
    """An embedding does not have the store's configured dimension."""

    def __init__(self, expected: int, actual: int, item_id: str | None = None):
        self.expected = expected
        self.actual = actual
        self.item_id = item_id
        target = f" for item {item_id}" if item_id else ""
        super().__init__(
            f"Embedding dimension mismatch{target}: expected {expected}, got {actual}"
        )


def _matches(message: str, patterns: tuple[tuple[str, ...], ...]) -> bool:
    """True if every fragment of any pattern occurs in message."""
    return any(all(fragment in message for fragment in pattern) for pattern in patterns)


@dataclass(frozen=True)
class ErrorVocabulary:
    """
    Backend-specific error phrases, matched case-insensitively.

    Each entry is a tuple of fragments that must all appear in the error
    message for the condition to match.
    """

    duplicate: tuple[tuple[str, ...], ...] = (("duplicate",), ("already exists",))
    missing_store: tuple[tuple[str, ...], ...] = ()
    no_data: tuple[tuple[str, ...], ...] = ()
    insufficient_rows: tuple[tuple[str, ...], ...] = ()
    already_indexed: tuple[tuple[str, ...], ...] = ()

    def is_duplicate(self, error: BaseException) -> bool:
        if isinstance(error, DuplicateItemError):
            return True
        return _matches(str(error).lower(), self.duplicate)

    def is_missing_store(self, error: BaseException) -> bool:
        return _matches(str(error).lower(), self.missing_store)

    def is_no_data(self, error: BaseException) -> bool:
        return _matches(str(error).lower(), self.no_data)

    def is_insufficient_rows(self, error: BaseException) -> bool:
        return _matches(str(error).lower(), self.insufficient_rows)

    def is_already_indexed(self, error: BaseException) -> bool:
        return _matches(str(error).lower(), self.already_indexed)
