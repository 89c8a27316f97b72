"""Protocol for the documents comments live in."""

from typing import Optional, Protocol, runtime_checkable

from markco.models import Span


@runtime_checkable
class TextDocument(Protocol):
    """Protocol for an editable text document.

    Implementations wrap an editor buffer, a file on disk, or plain memory.
    Uses structural subtyping - no inheritance required.
    """

    @property
    def uri(self) -> str:
        """Return a stable identity for the document (cache key)."""
        ...

    @property
    def revision(self) -> int:
        """Return a counter that increases on every edit."""
        ...

    @property
    def line_count(self) -> int:
        """Return the number of lines in the document."""
        ...

    def get_text(self, span: Optional[Span] = None) -> str:
        """Return the full text, or the substring covered by span."""
        ...

    def replace_text(self, text: str) -> None:
        """Replace the whole document text and persist it.

        Failures propagate to the caller unchanged.
        """
        ...
