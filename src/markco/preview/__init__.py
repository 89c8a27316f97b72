"""Preview highlighting for markco."""

from markco.preview.matcher import highlight_tokens, normalize_anchor_text
from markco.preview.plugin import markco_plugin, render_preview

__all__ = ["highlight_tokens", "normalize_anchor_text", "markco_plugin", "render_preview"]
