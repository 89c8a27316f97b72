"""In-memory document implementation."""

from typing import Optional

from markco.models import Span
from markco.utils import offset_at


class MemoryDocument:
    """A document held entirely in memory.

    Every change bumps the revision so cached comments are re-read.
    """

    def __init__(self, text: str = "", uri: str = "memory://untitled.md"):
        self._text = text
        self._uri = uri
        self._revision = 1

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def line_count(self) -> int:
        return self._text.count("\n") + 1

    def get_text(self, span: Optional[Span] = None) -> str:
        if span is None:
            return self._text
        start = offset_at(self._text, span.start_line, span.start_char)
        end = offset_at(self._text, span.end_line, span.end_char)
        return self._text[start:end]

    def replace_text(self, text: str) -> None:
        self._text = text
        self._revision += 1

    def apply_edit(self, span: Span, new_text: str) -> None:
        """Replace the text covered by span, as an editor would."""
        start = offset_at(self._text, span.start_line, span.start_char)
        end = offset_at(self._text, span.end_line, span.end_char)
        self.replace_text(self._text[:start] + new_text + self._text[end:])
