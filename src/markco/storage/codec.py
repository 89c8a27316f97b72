"""Codec for the comment block embedded at the end of a Markdown document.

The block is an HTML comment, so it stays invisible in rendered output:

    <!-- markco-comments
    {"version": 2, "comments": [...]}
    -->

Any ``-->`` inside user text would end the HTML comment early, so string
fields are sanitized with a zero-width space before they are embedded.
"""

import json
import logging
import re
from datetime import datetime
from typing import Any, Callable, Optional

from markco.errors import MalformedStorage
from markco.models import SCHEMA_VERSION, Anchor, Comment, CommentCollection, Reply

logger = logging.getLogger(__name__)

BLOCK_START = "<!-- markco-comments"
BLOCK_END = "-->"
SANITIZED_END = "--\u200b>"

_FENCE_RE = re.compile(r"^```", re.MULTILINE)


def sanitize(text: str) -> str:
    """Make text safe to embed inside the comment block."""
    return text.replace(BLOCK_END, SANITIZED_END)


def restore(text: str) -> str:
    """Undo sanitize().

    Not a perfect inverse: text that already contained the zero-width
    variant before sanitizing also comes back as a literal close sequence.
    """
    return text.replace(SANITIZED_END, BLOCK_END)


def is_inside_code_fence(text: str, position: int) -> bool:
    """Check if position falls inside a fenced code region."""
    fence_count = len(_FENCE_RE.findall(text, 0, position))
    return fence_count % 2 == 1


def _map_strings(value: Any, fn: Callable[[str], str]) -> Any:
    """Apply fn to every string in a JSON-like structure."""
    if isinstance(value, str):
        return fn(value)
    if isinstance(value, list):
        return [_map_strings(item, fn) for item in value]
    if isinstance(value, dict):
        return {key: _map_strings(item, fn) for key, item in value.items()}
    return value


def encode(collection: CommentCollection) -> str:
    """Serialize a collection to a complete comment block."""
    data = _map_strings(collection.to_dict(), sanitize)
    payload = json.dumps(data, indent=2, ensure_ascii=False)
    # "<" only occurs inside JSON strings; escaping it hides "<!--" from find_block
    payload = payload.replace("<!--", "\\u003c!--")
    return f"{BLOCK_START}\n{payload}\n{BLOCK_END}"


def find_block(text: str) -> Optional[tuple[int, int]]:
    """Locate the candidate comment block.

    Returns:
        (start, end) offsets of the block including both delimiters, or
        None when the last start marker is fenced or never closed
    """
    start = text.rfind(BLOCK_START)
    if start == -1:
        return None
    if is_inside_code_fence(text, start):
        return None
    end = text.find(BLOCK_END, start + len(BLOCK_START))
    if end == -1:
        return None
    return start, end + len(BLOCK_END)


def _locate(text: str) -> Optional[tuple[int, int, CommentCollection]]:
    """Bounds and contents of the block; raises MalformedStorage if it does not parse."""
    bounds = find_block(text)
    if bounds is None:
        return None
    start, end = bounds
    payload = text[start + len(BLOCK_START) : end - len(BLOCK_END)].strip()
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise MalformedStorage(f"Comment block is not valid JSON: {exc}") from exc
    return start, end, _parse_collection(_map_strings(data, restore))


def split_document(text: str) -> tuple[str, Optional[str]]:
    """Split a document into its body and its active comment block.

    Only a block that parses counts as active; anything else, such as prose
    quoting the start marker, is ordinary body text. Text after the block
    stays in the body, moved up to where the block was.
    """
    try:
        located = _locate(text)
    except MalformedStorage:
        return text, None
    if located is None:
        return text, None
    start, end, _ = located
    before, after = text[:start], text[end:]
    if after.strip():
        before += after.lstrip("\r\n")
    return before, text[start:end]


def parse_block(text: str) -> Optional[CommentCollection]:
    """Strictly parse the comment block of a document.

    Returns:
        The decoded collection, or None if the document has no block

    Raises:
        MalformedStorage: if the block exists but is not a valid collection
    """
    located = _locate(text)
    return located[2] if located is not None else None


def decode(text: str) -> CommentCollection:
    """Decode the comment block of a document, never raising.

    Missing or malformed blocks yield an empty collection so the document
    stays readable.
    """
    try:
        collection = parse_block(text)
    except MalformedStorage as exc:
        logger.warning(f"Ignoring malformed comment block: {exc}")
        return CommentCollection()
    return collection if collection is not None else CommentCollection()


def line_ending(text: str) -> str:
    r"""The newline sequence a document uses ("\r\n" or "\n")."""
    return "\r\n" if "\r\n" in text else "\n"


def apply_to_document(text: str, collection: CommentCollection) -> str:
    """Return text with its comment block replaced by one for collection.

    The block goes at the end, written with the document's own line ending.
    An empty collection removes the block.
    """
    newline = line_ending(text)
    body, _ = split_document(text)
    body = body.rstrip()
    if not collection.comments:
        return body + newline if body else ""
    # JSON strings escape their newlines, so every literal "\n" is a line break
    block = encode(collection).replace("\n", newline)
    if not body:
        return block + newline
    return f"{body}{newline}{newline}{block}{newline}"


# Validation of decoded JSON

def _require(data: dict, key: str, kind: type, where: str) -> Any:
    if key not in data:
        raise MalformedStorage(f"{where}: missing '{key}'")
    return _check_type(data[key], kind, f"{where}.{key}")


def _optional(data: dict, key: str, kind: type, where: str, default: Any = None) -> Any:
    if key not in data or data[key] is None:
        return default
    return _check_type(data[key], kind, f"{where}.{key}")


def _check_type(value: Any, kind: type, where: str) -> Any:
    # bool is a subclass of int; JSON true/false must not pass as coordinates
    if kind is int and isinstance(value, bool):
        raise MalformedStorage(f"{where}: expected int, got bool")
    if not isinstance(value, kind):
        raise MalformedStorage(f"{where}: expected {kind.__name__}, got {type(value).__name__}")
    return value


def _timestamp(data: dict, key: str, where: str, required: bool = True) -> Optional[str]:
    if required:
        value = _require(data, key, str, where)
    else:
        value = _optional(data, key, str, where)
        if value is None:
            return None
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise MalformedStorage(f"{where}.{key}: not an ISO-8601 timestamp: {value!r}") from exc
    return value


def _thumbs_up(data: dict, where: str) -> set[str]:
    entries = _optional(data, "thumbsUp", list, where, default=[])
    for i, entry in enumerate(entries):
        _check_type(entry, str, f"{where}.thumbsUp[{i}]")
    return set(entries)


def _parse_anchor(data: Any, where: str) -> Anchor:
    _check_type(data, dict, where)
    anchor = Anchor(
        text=_require(data, "text", str, where),
        start_line=_require(data, "startLine", int, where),
        start_char=_require(data, "startChar", int, where),
        end_line=_require(data, "endLine", int, where),
        end_char=_require(data, "endChar", int, where),
    )
    if min(anchor.start_line, anchor.start_char, anchor.end_line, anchor.end_char) < 0:
        raise MalformedStorage(f"{where}: negative coordinates")
    if (anchor.start_line, anchor.start_char) > (anchor.end_line, anchor.end_char):
        raise MalformedStorage(f"{where}: start is after end")
    return anchor


def _parse_reply(data: Any, where: str) -> Reply:
    _check_type(data, dict, where)
    return Reply(
        id=_require(data, "id", str, where),
        content=_require(data, "content", str, where),
        author=_require(data, "author", str, where),
        created_at=_timestamp(data, "createdAt", where),
        updated_at=_timestamp(data, "updatedAt", where, required=False),
        thumbs_up=_thumbs_up(data, where),
    )


def _parse_comment(data: Any, where: str) -> Comment:
    _check_type(data, dict, where)
    comment = Comment(
        id=_require(data, "id", str, where),
        anchor=_parse_anchor(_require(data, "anchor", dict, where), f"{where}.anchor"),
        content=_require(data, "content", str, where),
        author=_require(data, "author", str, where),
        created_at=_timestamp(data, "createdAt", where),
        updated_at=_timestamp(data, "updatedAt", where, required=False),
        resolved=_optional(data, "resolved", bool, where, default=False),
        orphaned=_optional(data, "orphaned", bool, where, default=False),
        thumbs_up=_thumbs_up(data, where),
    )
    raw_replies = _optional(data, "replies", list, where, default=[])
    for i, raw in enumerate(raw_replies):
        reply = _parse_reply(raw, f"{where}.replies[{i}]")
        if comment.find_reply(reply.id) is not None:
            raise MalformedStorage(f"{where}: duplicate reply id {reply.id!r}")
        comment.replies.append(reply)
    return comment


def _parse_collection(data: Any) -> CommentCollection:
    _check_type(data, dict, "block")
    collection = CommentCollection(
        version=_optional(data, "version", int, "block", default=SCHEMA_VERSION),
    )
    raw_comments = _require(data, "comments", list, "block")
    for i, raw in enumerate(raw_comments):
        comment = _parse_comment(raw, f"comments[{i}]")
        if collection.find(comment.id) is not None:
            raise MalformedStorage(f"duplicate comment id {comment.id!r}")
        collection.comments.append(comment)
    return collection
