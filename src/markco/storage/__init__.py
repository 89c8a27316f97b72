"""Embedded comment storage for markco."""

from markco.storage import codec
from markco.storage.store import CommentStore

__all__ = ["CommentStore", "codec"]
