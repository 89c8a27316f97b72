"""Conversions between character offsets and line/character positions."""


def offset_at(text: str, line: int, char: int) -> int:
    """Convert a zero-based (line, char) position to an offset into text.

    Positions past the end of a line or of the text are clamped.
    """
    lines = text.split("\n")
    offset = 0
    for i in range(min(line, len(lines))):
        offset += len(lines[i]) + 1  # +1 for "\n"
    if line < len(lines):
        offset += min(char, len(lines[line]))
    return min(offset, len(text))


def position_at(text: str, offset: int) -> tuple[int, int]:
    """Convert an offset into text to a zero-based (line, char) position."""
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset)
    line_start = text.rfind("\n", 0, offset) + 1
    return line, offset - line_start


def end_position(start_line: int, start_char: int, text: str) -> tuple[int, int]:
    """Position just after text when it is placed at (start_line, start_char)."""
    newlines = text.count("\n")
    if newlines == 0:
        return start_line, start_char + len(text)
    return start_line + newlines, len(text) - text.rfind("\n") - 1
