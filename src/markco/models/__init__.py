"""Data models for markco."""

from markco.models.comment import (
    SCHEMA_VERSION,
    Anchor,
    Comment,
    CommentCollection,
    Reply,
    Span,
    utc_timestamp,
)

__all__ = [
    "Anchor",
    "Comment",
    "CommentCollection",
    "Reply",
    "Span",
    "SCHEMA_VERSION",
    "utc_timestamp",
]
