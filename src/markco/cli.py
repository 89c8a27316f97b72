"""CLI entry point for markco."""

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import Callable

from markco.documents import EnvironmentAuthorProvider, FileDocument
from markco.errors import MarkcoError
from markco.models import Span
from markco.storage import CommentStore, codec
from markco.utils import end_position, format_comment, position_at

logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)
logger = logging.getLogger(__name__)

_SPAN_RE = re.compile(r"^(\d+):(\d+)-(\d+):(\d+)$")


def parse_span(value: str) -> Span:
    """Parse a one-based "LINE:COL-LINE:COL" range into a zero-based Span."""
    match = _SPAN_RE.match(value.strip())
    if match is None:
        raise argparse.ArgumentTypeError(f"expected LINE:COL-LINE:COL, got {value!r}")
    start_line, start_col, end_line, end_col = (int(group) for group in match.groups())
    if min(start_line, start_col, end_line, end_col) < 1:
        raise argparse.ArgumentTypeError("lines and columns start at 1")
    try:
        return Span(start_line - 1, start_col - 1, end_line - 1, end_col - 1)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def span_of_text(doc: FileDocument, needle: str) -> Span:
    """Span of the first occurrence of needle in the document body."""
    body, _ = codec.split_document(doc.get_text())
    offset = body.find(needle)
    if not needle or offset == -1:
        raise MarkcoError(f"Text not found in document: {needle!r}")
    start_line, start_char = position_at(body, offset)
    end_line, end_char = end_position(start_line, start_char, needle)
    return Span(start_line, start_char, end_line, end_char)


def open_document(path: str) -> FileDocument:
    document_path = Path(path)
    if not document_path.is_file():
        logger.error(f"Document not found: {path}")
        sys.exit(1)
    return FileDocument(document_path)


def list_comments(args: argparse.Namespace, store: CommentStore) -> None:
    doc = open_document(args.document)
    comments = store.get_comments(doc)
    if not args.all:
        comments = [c for c in comments if not c.resolved]
    if not comments:
        print("No comments.")
        return
    print("\n\n".join(format_comment(c) for c in comments))


def add(args: argparse.Namespace, store: CommentStore) -> None:
    doc = open_document(args.document)
    span = args.span if args.span is not None else span_of_text(doc, args.match)
    comment = store.add(doc, span, args.content, args.author)
    logger.info(f"Added comment {comment.id}")


def reply(args: argparse.Namespace, store: CommentStore) -> None:
    doc = open_document(args.document)
    new_reply = store.add_reply(doc, args.comment_id, args.content, args.author)
    logger.info(f"Added reply {new_reply.id}")


def resolve(args: argparse.Namespace, store: CommentStore) -> None:
    doc = open_document(args.document)
    comment = store.resolve(doc, args.comment_id)
    logger.info(f"{comment.id} is now {'resolved' if comment.resolved else 'open'}")


def delete(args: argparse.Namespace, store: CommentStore) -> None:
    doc = open_document(args.document)
    if args.reply_id:
        store.delete_reply(doc, args.comment_id, args.reply_id, editor=args.author)
        logger.info(f"Deleted reply {args.reply_id}")
    else:
        store.delete(doc, args.comment_id, editor=args.author)
        logger.info(f"Deleted comment {args.comment_id}")


def react(args: argparse.Namespace, store: CommentStore) -> None:
    doc = open_document(args.document)
    present = store.toggle_thumbs_up(doc, args.comment_id, args.author, reply_id=args.reply_id)
    logger.info("Added thumbs-up" if present else "Removed thumbs-up")


def reconcile(args: argparse.Namespace, store: CommentStore) -> None:
    doc = open_document(args.document)
    updates = store.reconcile_anchors(doc)
    if not updates:
        logger.info("All anchors are up to date.")
        return
    for update in updates:
        if update.orphaned:
            logger.info(f"  {update.comment_id}: orphaned")
        else:
            logger.info(f"  {update.comment_id}: line {update.anchor.start_line + 1}")
    logger.info(f"Updated {len(updates)} anchors")


def preview(args: argparse.Namespace, store: CommentStore) -> None:
    from markco.preview import render_preview

    doc = open_document(args.document)
    rendered = render_preview(doc.get_text())
    if args.output:
        Path(args.output).write_text(rendered, encoding="utf-8")
        logger.info(f"Wrote preview -> {args.output}")
    else:
        print(rendered)


def serve(args: argparse.Namespace, store: CommentStore) -> None:
    document_path = Path(args.document)
    if not document_path.is_file():
        logger.error(f"Document not found: {args.document}")
        sys.exit(1)

    # Import here to avoid loading MCP unless needed
    from markco.server import create_mcp_server

    from typing import cast, Literal

    logger.info(f"Serving {args.document} via {args.transport}")
    mcp = create_mcp_server(document_path)
    mcp.run(transport=cast(Literal["stdio", "sse", "streamable-http"], args.transport))


COMMANDS: dict[str, Callable[[argparse.Namespace, CommentStore], None]] = {
    "list": list_comments,
    "add": add,
    "reply": reply,
    "resolve": resolve,
    "delete": delete,
    "react": react,
    "reconcile": reconcile,
    "preview": preview,
    "serve": serve,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="markco",
        description="markco - threaded comments stored inside Markdown documents",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    parser.add_argument(
        "--author",
        help="Author name for new comments and permission checks "
        "(default: $MARKCO_AUTHOR, then the login name)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List comment threads")
    list_parser.add_argument("document", help="Markdown file")
    list_parser.add_argument("-a", "--all", action="store_true", help="Include resolved threads")

    add_parser = subparsers.add_parser("add", help="Comment on a span of text")
    add_parser.add_argument("document", help="Markdown file")
    add_parser.add_argument("content", help="Comment text")
    target = add_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("-m", "--match", help="Comment on the first occurrence of this text")
    target.add_argument(
        "-s", "--span", type=parse_span, help="Comment on LINE:COL-LINE:COL (one-based)"
    )

    reply_parser = subparsers.add_parser("reply", help="Reply to a comment")
    reply_parser.add_argument("document", help="Markdown file")
    reply_parser.add_argument("comment_id", help="Comment to reply to")
    reply_parser.add_argument("content", help="Reply text")

    resolve_parser = subparsers.add_parser("resolve", help="Toggle a comment's resolved state")
    resolve_parser.add_argument("document", help="Markdown file")
    resolve_parser.add_argument("comment_id", help="Comment id")

    delete_parser = subparsers.add_parser("delete", help="Delete a comment or a reply")
    delete_parser.add_argument("document", help="Markdown file")
    delete_parser.add_argument("comment_id", help="Comment id")
    delete_parser.add_argument("-r", "--reply-id", help="Delete only this reply")

    react_parser = subparsers.add_parser("react", help="Toggle a thumbs-up")
    react_parser.add_argument("document", help="Markdown file")
    react_parser.add_argument("comment_id", help="Comment id")
    react_parser.add_argument("-r", "--reply-id", help="React to this reply instead")

    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Re-locate anchors after the document was edited"
    )
    reconcile_parser.add_argument("document", help="Markdown file")

    preview_parser = subparsers.add_parser("preview", help="Render HTML with highlights")
    preview_parser.add_argument("document", help="Markdown file")
    preview_parser.add_argument("-o", "--output", help="Write HTML here instead of stdout")

    serve_parser = subparsers.add_parser("serve", help="Start MCP server for a document")
    serve_parser.add_argument("document", help="Markdown file")
    serve_parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    if args.author is None:
        args.author = EnvironmentAuthorProvider().get_author()

    try:
        COMMANDS[args.command](args, CommentStore())
    except MarkcoError as exc:
        logger.error(f"Error: {exc}")
        sys.exit(1)
    except ValueError as exc:
        logger.error(f"Invalid input: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
