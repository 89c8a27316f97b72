"""Protocol for author identity providers."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class AuthorProvider(Protocol):
    """Protocol for resolving the name recorded on new comments.

    Lookups against version control or an account service belong to
    implementations; the store only needs a string.
    """

    def get_author(self) -> str:
        """Return the identifier of the current author."""
        ...
