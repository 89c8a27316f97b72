"""Plain-text rendering of comment threads."""

from markco.models import Comment

SNIPPET_LENGTH = 60


def format_comment(comment: Comment) -> str:
    """Render a comment thread as plain text, positions shown one-based."""
    anchor = comment.anchor
    state = []
    if comment.resolved:
        state.append("resolved")
    if comment.orphaned:
        state.append("orphaned")
    flags = f" [{', '.join(state)}]" if state else ""
    snippet = anchor.text[:SNIPPET_LENGTH].replace("\n", " ")
    if len(anchor.text) > SNIPPET_LENGTH:
        snippet += "..."

    lines = [
        f"{comment.id}{flags}",
        f"  at {anchor.start_line + 1}:{anchor.start_char + 1} \"{snippet}\"",
        f"  {comment.author}: {comment.content}",
    ]
    if comment.thumbs_up:
        lines.append(f"  +1: {', '.join(sorted(comment.thumbs_up))}")
    for reply in comment.replies:
        lines.append(f"    {reply.id} {reply.author}: {reply.content}")
    return "\n".join(lines)
