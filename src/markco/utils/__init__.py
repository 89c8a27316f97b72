"""Utility functions for markco."""

from markco.utils.formatting import format_comment
from markco.utils.positions import end_position, offset_at, position_at

__all__ = ["offset_at", "position_at", "end_position", "format_comment"]
