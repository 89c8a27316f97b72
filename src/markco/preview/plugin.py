"""markdown-it plugin that highlights commented text in rendered previews."""

from typing import Optional

from markdown_it import MarkdownIt
from markdown_it.rules_core import StateCore

from markco.preview.matcher import highlight_tokens

RULE_NAME = "markco_highlight"


def markco_plugin(md: MarkdownIt) -> None:
    """Register the highlight transform as a core rule running after parsing."""

    def markco_highlight(state: StateCore) -> None:
        state.tokens = highlight_tokens(state.tokens, state.src)

    md.core.ruler.push(RULE_NAME, markco_highlight)


def render_preview(src: str, md: Optional[MarkdownIt] = None) -> str:
    """Render Markdown to HTML with comment highlights.

    Args:
        src: Markdown source, including its embedded comment block
        md: Parser to extend; defaults to the CommonMark preset, which
            passes the embedded block through as an HTML comment

    Returns:
        Rendered HTML
    """
    md = md or MarkdownIt("commonmark")
    md.use(markco_plugin)
    return md.render(src)
