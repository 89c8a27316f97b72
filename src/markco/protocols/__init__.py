"""Protocol definitions for collaborator components."""

from markco.protocols.author import AuthorProvider
from markco.protocols.document import TextDocument

__all__ = ["TextDocument", "AuthorProvider"]
