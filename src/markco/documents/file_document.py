"""Document implementation for Markdown files on disk."""

import logging
from pathlib import Path

from markco.documents.memory_document import MemoryDocument

logger = logging.getLogger(__name__)


class FileDocument(MemoryDocument):
    """A UTF-8 text file, loaded into memory and written back on every change."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(self._read(), uri=self.path.resolve().as_uri())

    def _read(self) -> str:
        # newline="" keeps "\r\n" intact so rewriting does not convert line endings
        with self.path.open("r", encoding="utf-8", newline="") as f:
            return f.read()

    def reload(self) -> None:
        """Re-read the file after an external change."""
        text = self._read()
        if text != self.get_text():
            logger.debug(f"Reloaded {self.path}")
            super().replace_text(text)

    def replace_text(self, text: str) -> None:
        with self.path.open("w", encoding="utf-8", newline="") as f:
            f.write(text)
        super().replace_text(text)
