"""Exception types raised by markco."""


class MarkcoError(Exception):
    """Base class for markco errors."""


class NotFound(MarkcoError):
    """A referenced comment or reply id does not exist."""

    def __init__(self, kind: str, item_id: str):
        super().__init__(f"{kind} not found: {item_id}")
        self.kind = kind
        self.item_id = item_id


class MalformedStorage(MarkcoError):
    """The embedded comment block could not be parsed."""


class PermissionDenied(MarkcoError):
    """Someone other than the author tried to change a comment or reply."""

    def __init__(self, editor: str, author: str):
        super().__init__(f"{editor!r} cannot modify content written by {author!r}")
        self.editor = editor
        self.author = author
