"""Core data models for comments, replies and their anchors."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

SCHEMA_VERSION = 2


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Span:
    """A zero-based line/character range in a document."""

    start_line: int
    start_char: int
    end_line: int
    end_char: int

    def __post_init__(self) -> None:
        if (self.start_line, self.start_char) > (self.end_line, self.end_char):
            raise ValueError(f"Span start is after its end: {self}")
        if min(self.start_line, self.start_char, self.end_line, self.end_char) < 0:
            raise ValueError(f"Span coordinates must be non-negative: {self}")

    @property
    def is_empty(self) -> bool:
        return (self.start_line, self.start_char) == (self.end_line, self.end_char)

    def contains(self, line: int, char: int) -> bool:
        """Check if a position lies inside the span (end is exclusive)."""
        position = (line, char)
        return (self.start_line, self.start_char) <= position < (self.end_line, self.end_char)


@dataclass
class Anchor:
    """The text a comment refers to, with its last known coordinates."""

    text: str
    start_line: int
    start_char: int
    end_line: int
    end_char: int

    @classmethod
    def from_span(cls, text: str, span: Span) -> "Anchor":
        return cls(text, span.start_line, span.start_char, span.end_line, span.end_char)

    @property
    def span(self) -> Span:
        return Span(self.start_line, self.start_char, self.end_line, self.end_char)

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "startLine": self.start_line,
            "startChar": self.start_char,
            "endLine": self.end_line,
            "endChar": self.end_char,
        }


@dataclass
class Reply:
    """A reply in a comment thread."""

    id: str
    content: str
    author: str
    created_at: str
    updated_at: Optional[str] = None
    thumbs_up: set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "content": self.content,
            "author": self.author,
            "createdAt": self.created_at,
        }
        if self.updated_at is not None:
            data["updatedAt"] = self.updated_at
        if self.thumbs_up:
            data["thumbsUp"] = sorted(self.thumbs_up)
        return data


@dataclass
class Comment:
    """A comment anchored to a span of document text."""

    id: str
    anchor: Anchor
    content: str
    author: str
    created_at: str
    updated_at: Optional[str] = None
    resolved: bool = False
    orphaned: bool = False
    thumbs_up: set[str] = field(default_factory=set)
    replies: list[Reply] = field(default_factory=list)

    def find_reply(self, reply_id: str) -> Optional[Reply]:
        for reply in self.replies:
            if reply.id == reply_id:
                return reply
        return None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "anchor": self.anchor.to_dict(),
            "content": self.content,
            "author": self.author,
            "createdAt": self.created_at,
        }
        if self.updated_at is not None:
            data["updatedAt"] = self.updated_at
        if self.resolved:
            data["resolved"] = True
        if self.orphaned:
            data["orphaned"] = True
        if self.thumbs_up:
            data["thumbsUp"] = sorted(self.thumbs_up)
        if self.replies:
            data["replies"] = [reply.to_dict() for reply in self.replies]
        return data


@dataclass
class CommentCollection:
    """All comments stored in one document."""

    version: int = SCHEMA_VERSION
    comments: list[Comment] = field(default_factory=list)

    def find(self, comment_id: str) -> Optional[Comment]:
        for comment in self.comments:
            if comment.id == comment_id:
                return comment
        return None

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "comments": [comment.to_dict() for comment in self.comments],
        }
