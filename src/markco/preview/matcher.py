"""Match comment anchors against markdown-it tokens and wrap them in highlights.

Anchors are captured from the Markdown source, so their text may still
contain markup (``**bold**``, backticks, list markers) that the parser has
turned into separate inline tokens. Matching therefore runs against the
concatenated plain text of each inline token's children, and highlights
that cross formatting boundaries are split into several well-nested spans.
"""

import html
import logging
import re
from dataclasses import dataclass
from typing import Collection, Iterable, Optional, Sequence

from markdown_it.token import Token

from markco.models import Comment
from markco.storage import codec

logger = logging.getLogger(__name__)

HIGHLIGHT_CLASS = "markco-highlight"
RESOLVED_CLASS = "markco-resolved"

# Children whose content is rendered as plain text
_TEXT_TYPES = {"text", "code_inline"}

_LEADING_MARKUP = [
    re.compile(r"^#{1,6}\s+"),  # heading
    re.compile(r"^>\s?"),  # blockquote
    re.compile(r"^\d+[.)]\s+"),  # ordered list
    re.compile(r"^[-*+]\s+"),  # bullet list
]
_STRONG_RE = re.compile(r"\*\*|__")
_EM_STAR_RE = re.compile(r"(?<!\w)\*(?!\*)|\*(?!\w)")
_EM_UNDERSCORE_RE = re.compile(r"(?<!\w)_(?!_)|_(?!\w)")


@dataclass(frozen=True)
class HighlightSpan:
    """A [start, end) range of an inline token's combined text."""

    start: int
    end: int
    comment: Comment


def normalize_anchor_text(text: str) -> str:
    """Strip Markdown syntax that does not survive into rendered text."""
    normalized = text.replace("\r\n", "\n")
    for pattern in _LEADING_MARKUP:
        normalized = pattern.sub("", normalized)
    normalized = normalized.replace("`", "")
    normalized = _STRONG_RE.sub("", normalized)
    # Only lone emphasis markers; underscores inside words stay
    normalized = _EM_STAR_RE.sub("", normalized)
    normalized = _EM_UNDERSCORE_RE.sub("", normalized)
    return normalized


def group_comments_by_line(comments: Iterable[Comment]) -> dict[int, list[Comment]]:
    """Group comments by anchor start line, left to right within a line."""
    by_line: dict[int, list[Comment]] = {}
    for comment in comments:
        by_line.setdefault(comment.anchor.start_line, []).append(comment)
    for line_comments in by_line.values():
        line_comments.sort(key=lambda c: c.anchor.start_char)
    return by_line


def extract_text(children: Sequence[Token]) -> tuple[str, list[Optional[tuple[int, int]]]]:
    """Concatenate the plain text of inline children.

    Returns:
        (combined text, per-child [start, end) offsets or None for children
        that carry no text)
    """
    parts: list[str] = []
    positions: list[Optional[tuple[int, int]]] = []
    length = 0
    for child in children:
        if child.type in _TEXT_TYPES:
            content = child.content
        elif child.type == "softbreak":
            content = "\n"
        else:
            positions.append(None)
            continue
        parts.append(content)
        positions.append((length, length + len(content)))
        length += len(content)
    return "".join(parts), positions


def _exact_match(full_text: str, comment: Comment) -> Optional[tuple[int, int]]:
    needle = normalize_anchor_text(comment.anchor.text)
    index = full_text.find(needle) if needle else -1
    if index == -1:
        return None
    return index, index + len(needle)


def find_spans(
    full_text: str, comments: Iterable[Comment], matched_elsewhere: Collection[str] = ()
) -> list[HighlightSpan]:
    """Locate each comment's anchor in full_text.

    Anchors that cannot be matched fall back to the whole text so a live
    comment is never silently dropped from the preview. Comments whose ids
    are in matched_elsewhere already matched a sibling token on the same
    source lines (another cell of a table row) and get no fallback.
    """
    spans = []
    for comment in comments:
        match = _exact_match(full_text, comment)
        if match is not None:
            spans.append(HighlightSpan(match[0], match[1], comment))
        elif full_text and comment.id not in matched_elsewhere:
            logger.debug(f"No exact match for {comment.id}, highlighting whole block")
            spans.append(HighlightSpan(0, len(full_text), comment))
    # Longer spans first on equal starts so shorter ones nest inside them
    spans.sort(key=lambda s: (s.start, -s.end))
    return spans


def _open_token(comment: Comment) -> Token:
    classes = HIGHLIGHT_CLASS
    if comment.resolved:
        classes += f" {RESOLVED_CLASS}"
    token = Token("html_inline", "", 0)
    token.content = (
        f'<span class="{classes}" data-comment-id="{html.escape(comment.id)}"'
        f' title="{html.escape(comment.content)}">'
    )
    return token


def _close_token() -> Token:
    token = Token("html_inline", "", 0)
    token.content = "</span>"
    return token


def wrap_children(children: Sequence[Token], spans: Sequence[HighlightSpan]) -> list[Token]:
    """Return a new child list with highlight markers around each span.

    Markers are tracked on an explicit stack. Before each piece of text the
    stack is synced to the spans active there: the common prefix stays open,
    the rest closes in reverse order of opening and new spans open after it.
    Formatting tokens (strong, em, links) close every marker first, so the
    output always nests properly.
    """
    _, positions = extract_text(children)
    out: list[Token] = []
    stack: list[HighlightSpan] = []
    cursor = 0

    def active_at(pos: int) -> list[HighlightSpan]:
        return [s for s in spans if s.start <= pos < s.end]

    def sync(desired: list[HighlightSpan]) -> None:
        keep = 0
        while keep < len(stack) and keep < len(desired) and stack[keep] is desired[keep]:
            keep += 1
        while len(stack) > keep:
            stack.pop()
            out.append(_close_token())
        for span in desired[keep:]:
            stack.append(span)
            out.append(_open_token(span.comment))

    for child, position in zip(children, positions):
        if position is None:
            sync([] if child.nesting != 0 else active_at(cursor))
            out.append(child)
            continue

        start, end = position
        cursor = end
        if child.type == "softbreak" or start == end:
            sync(active_at(start))
            out.append(child)
            continue

        cuts = {start, end}
        for span in spans:
            for boundary in (span.start, span.end):
                if start < boundary < end:
                    cuts.add(boundary)
        bounds = sorted(cuts)

        if len(bounds) == 2:
            sync(active_at(start))
            out.append(child)
            continue

        for seg_start, seg_end in zip(bounds, bounds[1:]):
            sync(active_at(seg_start))
            out.append(child.copy(content=child.content[seg_start - start : seg_end - start]))

    sync([])
    return out


def _relevant_comments(token: Token, by_line: dict[int, list[Comment]]) -> list[Comment]:
    start_line, end_line = token.map
    return [c for line in range(start_line, end_line) for c in by_line.get(line, [])]


def highlight_tokens(tokens: list[Token], src: str) -> list[Token]:
    """Wrap commented text in highlight markers.

    Pure transform: the input tokens are left untouched and, when the source
    has no usable comments, the input list itself is returned.

    Args:
        tokens: Block-level token stream produced by markdown-it
        src: Markdown source the tokens were parsed from

    Returns:
        Token stream with highlight markers inserted into inline children
    """
    comments = [c for c in codec.decode(src).comments if not c.orphaned]
    if not comments:
        return tokens

    by_line = group_comments_by_line(comments)
    inline = [t for t in tokens if t.type == "inline" and t.map and t.children]

    # Table cells of one row share a map; record which comments matched any of them
    exact: dict[tuple[int, int], set[str]] = {}
    for token in inline:
        full_text, _ = extract_text(token.children)
        for comment in _relevant_comments(token, by_line):
            if _exact_match(full_text, comment) is not None:
                exact.setdefault(tuple(token.map), set()).add(comment.id)

    result = []
    for token in tokens:
        if token.type != "inline" or not token.map or not token.children:
            result.append(token)
            continue

        relevant = _relevant_comments(token, by_line)
        if not relevant:
            result.append(token)
            continue

        full_text, _ = extract_text(token.children)
        spans = find_spans(full_text, relevant, exact.get(tuple(token.map), set()))
        if not spans:
            result.append(token)
            continue

        result.append(token.copy(children=wrap_children(token.children, spans)))
    return result
