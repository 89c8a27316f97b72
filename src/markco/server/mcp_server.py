"""FastMCP server implementation for markco."""

from pathlib import Path

from mcp.server.fastmcp import FastMCP

from markco.documents import EnvironmentAuthorProvider, FileDocument
from markco.errors import MarkcoError
from markco.models import Span
from markco.protocols import AuthorProvider
from markco.storage import CommentStore
from markco.utils import format_comment


def create_mcp_server(document_path: Path, authors: AuthorProvider | None = None) -> FastMCP:
    """Create an MCP server for a single Markdown document.

    Design: 1 process = 1 document. The file is reloaded before every tool
    call so edits made by other programs are picked up.

    Args:
        document_path: Path to the Markdown file to serve
        authors: Identity recorded on new comments (default: environment)

    Returns:
        Configured FastMCP server instance
    """
    mcp = FastMCP(
        name="markco",
    )

    doc = FileDocument(document_path)
    store = CommentStore()
    authors = authors or EnvironmentAuthorProvider()

    def current() -> FileDocument:
        doc.reload()
        return doc

    @mcp.tool()
    def list_comments(include_resolved: bool = True) -> str:
        """List comment threads in the document.

        Args:
            include_resolved: Also show resolved threads (default: True)

        Returns:
            One block per thread with its anchor, content and replies
        """
        comments = store.get_comments(current())
        if not include_resolved:
            comments = [c for c in comments if not c.resolved]
        if not comments:
            return "No comments."
        return "\n\n".join(format_comment(c) for c in comments)

    @mcp.tool()
    def add_comment(
        content: str, start_line: int, start_char: int, end_line: int, end_char: int
    ) -> str:
        """Comment on a span of the document.

        Args:
            content: Comment text
            start_line: Zero-based line where the commented text starts
            start_char: Zero-based character offset within start_line
            end_line: Zero-based line where the commented text ends
            end_char: Character offset just past the commented text

        Returns:
            The new comment, or an error message
        """
        try:
            span = Span(start_line, start_char, end_line, end_char)
            comment = store.add(current(), span, content, authors.get_author())
        except (MarkcoError, ValueError) as exc:
            return f"Error: {exc}"
        return format_comment(comment)

    @mcp.tool()
    def reply(comment_id: str, content: str) -> str:
        """Reply to a comment thread.

        Args:
            comment_id: Id of the comment to reply to
            content: Reply text
        """
        try:
            new_reply = store.add_reply(current(), comment_id, content, authors.get_author())
        except MarkcoError as exc:
            return f"Error: {exc}"
        return f"Added reply {new_reply.id}"

    @mcp.tool()
    def resolve_comment(comment_id: str) -> str:
        """Toggle the resolved state of a comment."""
        try:
            comment = store.resolve(current(), comment_id)
        except MarkcoError as exc:
            return f"Error: {exc}"
        return f"{comment.id} is now {'resolved' if comment.resolved else 'open'}"

    @mcp.tool()
    def delete_comment(comment_id: str) -> str:
        """Delete a comment and all of its replies (author only)."""
        try:
            store.delete(current(), comment_id, editor=authors.get_author())
        except MarkcoError as exc:
            return f"Error: {exc}"
        return f"Deleted {comment_id}"

    @mcp.tool()
    def toggle_thumbs_up(comment_id: str, reply_id: str = "") -> str:
        """Add or remove your thumbs-up on a comment or reply.

        Args:
            comment_id: Id of the comment
            reply_id: Id of a reply in that comment; empty targets the comment
        """
        try:
            present = store.toggle_thumbs_up(
                current(), comment_id, authors.get_author(), reply_id=reply_id or None
            )
        except MarkcoError as exc:
            return f"Error: {exc}"
        return "Added thumbs-up" if present else "Removed thumbs-up"

    @mcp.tool()
    def reconcile() -> str:
        """Re-locate comment anchors after the document was edited."""
        updates = store.reconcile_anchors(current())
        if not updates:
            return "All anchors are up to date."
        lines = []
        for update in updates:
            if update.orphaned:
                lines.append(f"{update.comment_id}: orphaned")
            else:
                lines.append(f"{update.comment_id}: moved to line {update.anchor.start_line + 1}")
        return "\n".join(lines)

    return mcp
