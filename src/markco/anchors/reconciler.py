"""Nearest-text anchor reconciliation."""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from markco.models import Anchor, Comment
from markco.utils import end_position, offset_at, position_at

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnchorUpdate:
    """Outcome of reconciling one comment's anchor."""

    comment_id: str
    anchor: Anchor
    orphaned: bool
    changed: bool


class AnchorReconciler:
    """Relocate anchors by searching for their text in the current document.

    Edits anywhere in the document may have shifted the stored coordinates,
    so they are only used as a hint:
    - The stored position is kept when the text there still matches
    - Otherwise the occurrence whose start line is nearest the stored line
      wins, ties going to the first one in document order
    - Anchors whose text no longer appears are marked orphaned and keep
      their last known coordinates
    """

    def reconcile(self, text: str, comments: Iterable[Comment]) -> list[AnchorUpdate]:
        """Reconcile every comment against text.

        Args:
            text: Current document body, without the embedded comment block
            comments: Comments whose anchors should be checked

        Returns:
            One AnchorUpdate per comment, in input order
        """
        return [self.reconcile_one(text, comment) for comment in comments]

    def reconcile_one(self, text: str, comment: Comment) -> AnchorUpdate:
        anchor = comment.anchor
        location = self.locate(text, anchor)

        if location is None:
            if not comment.orphaned:
                logger.debug(f"Anchor of {comment.id} not found, marking orphaned")
            return AnchorUpdate(comment.id, anchor, orphaned=True, changed=not comment.orphaned)

        new_anchor = Anchor(anchor.text, *location)
        changed = comment.orphaned or new_anchor != anchor
        return AnchorUpdate(comment.id, new_anchor, orphaned=False, changed=changed)

    def locate(self, text: str, anchor: Anchor) -> Optional[tuple[int, int, int, int]]:
        """Find the best position for anchor.text.

        Returns:
            (start_line, start_char, end_line, end_char), or None if the text
            does not occur anywhere
        """
        if not anchor.text:
            return None

        if self._matches_in_place(text, anchor):
            return (anchor.start_line, anchor.start_char, anchor.end_line, anchor.end_char)

        best: Optional[tuple[int, int]] = None  # (distance, offset)
        for offset in self._occurrences(text, anchor.text):
            line, _ = position_at(text, offset)
            distance = abs(line - anchor.start_line)
            # Occurrences arrive in document order, so strict < keeps the first tie
            if best is None or distance < best[0]:
                best = (distance, offset)
                if distance == 0:
                    break

        if best is None:
            return None

        start_line, start_char = position_at(text, best[1])
        end_line, end_char = end_position(start_line, start_char, anchor.text)
        return start_line, start_char, end_line, end_char

    @staticmethod
    def _matches_in_place(text: str, anchor: Anchor) -> bool:
        lines = text.split("\n")
        if anchor.start_line >= len(lines) or anchor.end_line >= len(lines):
            return False
        if anchor.start_char > len(lines[anchor.start_line]):
            return False
        if anchor.end_char > len(lines[anchor.end_line]):
            return False
        start = offset_at(text, anchor.start_line, anchor.start_char)
        end = offset_at(text, anchor.end_line, anchor.end_char)
        return text[start:end] == anchor.text

    @staticmethod
    def _occurrences(text: str, needle: str) -> Iterable[int]:
        """Yield every offset of needle in text, overlapping matches included."""
        index = text.find(needle)
        while index != -1:
            yield index
            index = text.find(needle, index + 1)
