"""Document and author implementations for markco."""

from markco.documents.author import EnvironmentAuthorProvider
from markco.documents.file_document import FileDocument
from markco.documents.memory_document import MemoryDocument

__all__ = ["MemoryDocument", "FileDocument", "EnvironmentAuthorProvider"]
