"""Comment storage backed by the document's own embedded block."""

import copy
import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from markco.anchors import AnchorReconciler, AnchorUpdate
from markco.errors import NotFound, PermissionDenied
from markco.models import Anchor, Comment, CommentCollection, Reply, Span, utc_timestamp
from markco.protocols import TextDocument
from markco.storage import codec

logger = logging.getLogger(__name__)


@dataclass
class _CacheEntry:
    revision: int
    collection: CommentCollection


class CommentStore:
    """Comments for any number of documents, cached per document.

    The cache is keyed by document uri and invalidated whenever the
    document's revision changes. Every mutation is persisted immediately by
    rewriting the document's comment block.
    """

    def __init__(
        self,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], str]] = None,
        reconciler: Optional[AnchorReconciler] = None,
    ):
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))
        self._now = clock or utc_timestamp
        self._reconciler = reconciler or AnchorReconciler()
        self._cache: dict[str, _CacheEntry] = {}

    # Reading

    def get_collection(self, doc: TextDocument) -> CommentCollection:
        """Return the parsed comments of doc, decoding only on a cache miss."""
        entry = self._cache.get(doc.uri)
        if entry is None or entry.revision != doc.revision:
            logger.debug(f"Decoding comments for {doc.uri} at revision {doc.revision}")
            entry = _CacheEntry(doc.revision, codec.decode(doc.get_text()))
            self._cache[doc.uri] = entry
        return entry.collection

    def get_comments(self, doc: TextDocument) -> list[Comment]:
        return self.get_collection(doc).comments

    def clear_cache(self, doc: Optional[TextDocument] = None) -> None:
        """Drop the cached comments of doc, or of every document."""
        if doc is None:
            self._cache.clear()
        else:
            self._cache.pop(doc.uri, None)

    def find(self, doc: TextDocument, comment_id: str) -> Optional[Comment]:
        return self.get_collection(doc).find(comment_id)

    def find_reply(self, doc: TextDocument, comment_id: str, reply_id: str) -> Optional[Reply]:
        comment = self.find(doc, comment_id)
        if comment is None:
            return None
        return comment.find_reply(reply_id)

    def comment_at(self, doc: TextDocument, line: int, char: int) -> Optional[Comment]:
        """Find the first non-orphaned comment whose anchor covers a position."""
        for comment in self.get_comments(doc):
            if not comment.orphaned and comment.anchor.span.contains(line, char):
                return comment
        return None

    # Comments

    def add(self, doc: TextDocument, span: Span, content: str, author: str) -> Comment:
        """Comment on the text covered by span.

        Raises:
            ValueError: if span is empty or reaches past the document text
        """
        anchor = self._anchor_for(doc, span)
        comment = Comment(
            id=self._new_id(),
            anchor=anchor,
            content=content,
            author=author,
            created_at=self._now(),
        )
        collection = self._editable(doc)
        collection.comments.append(comment)
        self._persist(doc, collection)
        logger.info(f"Added comment {comment.id} on {doc.uri}")
        return comment

    def delete(self, doc: TextDocument, comment_id: str, editor: Optional[str] = None) -> None:
        """Delete a comment together with its replies."""
        collection = self._editable(doc)
        comment = self._require_comment(collection, comment_id)
        self._check_author(comment.author, editor)
        collection.comments.remove(comment)
        self._persist(doc, collection)
        logger.info(f"Deleted comment {comment_id} on {doc.uri}")

    def update(
        self, doc: TextDocument, comment_id: str, content: str, editor: Optional[str] = None
    ) -> Comment:
        collection = self._editable(doc)
        comment = self._require_comment(collection, comment_id)
        self._check_author(comment.author, editor)
        comment.content = content
        comment.updated_at = self._now()
        self._persist(doc, collection)
        return comment

    def resolve(self, doc: TextDocument, comment_id: str) -> Comment:
        """Toggle the resolved state of a comment."""
        collection = self._editable(doc)
        comment = self._require_comment(collection, comment_id)
        comment.resolved = not comment.resolved
        self._persist(doc, collection)
        return comment

    def re_anchor(self, doc: TextDocument, comment_id: str, span: Span) -> Comment:
        """Point a comment at new text, repairing an orphaned anchor."""
        anchor = self._anchor_for(doc, span)
        collection = self._editable(doc)
        comment = self._require_comment(collection, comment_id)
        comment.anchor = anchor
        comment.orphaned = False
        self._persist(doc, collection)
        return comment

    # Replies

    def add_reply(self, doc: TextDocument, comment_id: str, content: str, author: str) -> Reply:
        collection = self._editable(doc)
        comment = self._require_comment(collection, comment_id)
        reply_id = self._new_id()
        while comment.find_reply(reply_id) is not None:
            reply_id = self._new_id()
        reply = Reply(id=reply_id, content=content, author=author, created_at=self._now())
        comment.replies.append(reply)
        self._persist(doc, collection)
        return reply

    def delete_reply(
        self, doc: TextDocument, comment_id: str, reply_id: str, editor: Optional[str] = None
    ) -> None:
        collection = self._editable(doc)
        comment = self._require_comment(collection, comment_id)
        reply = self._require_reply(comment, reply_id)
        self._check_author(reply.author, editor)
        comment.replies.remove(reply)
        self._persist(doc, collection)

    def update_reply(
        self,
        doc: TextDocument,
        comment_id: str,
        reply_id: str,
        content: str,
        editor: Optional[str] = None,
    ) -> Reply:
        collection = self._editable(doc)
        comment = self._require_comment(collection, comment_id)
        reply = self._require_reply(comment, reply_id)
        self._check_author(reply.author, editor)
        reply.content = content
        reply.updated_at = self._now()
        self._persist(doc, collection)
        return reply

    # Reactions

    def toggle_thumbs_up(
        self, doc: TextDocument, comment_id: str, author: str, reply_id: Optional[str] = None
    ) -> bool:
        """Add or remove author's thumbs-up on a comment or one of its replies.

        Returns:
            True if author now has a thumbs-up on the target
        """
        collection = self._editable(doc)
        comment = self._require_comment(collection, comment_id)
        target = comment if reply_id is None else self._require_reply(comment, reply_id)
        if author in target.thumbs_up:
            target.thumbs_up.discard(author)
            present = False
        else:
            target.thumbs_up.add(author)
            present = True
        self._persist(doc, collection)
        return present

    # Reconciliation

    def reconcile_anchors(self, doc: TextDocument) -> list[AnchorUpdate]:
        """Relocate every anchor in doc after external edits.

        Returns:
            The updates that changed a comment; the document is only
            rewritten when this list is non-empty
        """
        collection = self._editable(doc)
        body, _ = codec.split_document(doc.get_text())
        updates = [
            update
            for update in self._reconciler.reconcile(body, collection.comments)
            if update.changed
        ]
        if not updates:
            return []

        for update in updates:
            comment = collection.find(update.comment_id)
            comment.anchor = update.anchor
            comment.orphaned = update.orphaned

        self._persist(doc, collection)
        orphaned = sum(1 for update in updates if update.orphaned)
        logger.info(
            f"Reconciled {len(updates)} anchors on {doc.uri} ({orphaned} orphaned)"
        )
        return updates

    # Internals

    def _editable(self, doc: TextDocument) -> CommentCollection:
        """Working copy of the cached collection; the cache only changes on persist."""
        return copy.deepcopy(self.get_collection(doc))

    def _persist(self, doc: TextDocument, collection: CommentCollection) -> None:
        text = codec.apply_to_document(doc.get_text(), collection)
        doc.replace_text(text)
        self._cache[doc.uri] = _CacheEntry(doc.revision, collection)
        logger.debug(f"Persisted {len(collection.comments)} comments to {doc.uri}")

    @staticmethod
    def _anchor_for(doc: TextDocument, span: Span) -> Anchor:
        if span.is_empty:
            raise ValueError("Cannot anchor a comment to an empty selection")
        lines = doc.get_text().split("\n")
        for line, char in ((span.start_line, span.start_char), (span.end_line, span.end_char)):
            # get_text() clamps, which would leave the anchor text shorter than its span
            if line >= len(lines) or char > len(lines[line]):
                raise ValueError(f"Selection {line}:{char} is outside the document")
        return Anchor.from_span(doc.get_text(span), span)

    @staticmethod
    def _require_comment(collection: CommentCollection, comment_id: str) -> Comment:
        comment = collection.find(comment_id)
        if comment is None:
            raise NotFound("Comment", comment_id)
        return comment

    @staticmethod
    def _require_reply(comment: Comment, reply_id: str) -> Reply:
        reply = comment.find_reply(reply_id)
        if reply is None:
            raise NotFound("Reply", reply_id)
        return reply

    @staticmethod
    def _check_author(author: str, editor: Optional[str]) -> None:
        if editor is not None and editor != author:
            raise PermissionDenied(editor, author)
