"""
Tests for document and author implementations
"""

from markco.documents import EnvironmentAuthorProvider, FileDocument, MemoryDocument
from markco.models import Span
from markco.protocols import AuthorProvider, TextDocument
from markco.storage import CommentStore


class TestMemoryDocument:
    """In-memory documents"""

    def test_satisfies_protocol(self):
        assert isinstance(MemoryDocument(), TextDocument)

    def test_get_text_span(self):
        doc = MemoryDocument("first line\nsecond line")
        assert doc.get_text(Span(0, 6, 1, 6)) == "line\nsecond"
        assert doc.line_count == 2

    def test_replace_bumps_revision(self):
        doc = MemoryDocument("a")
        revision = doc.revision
        doc.replace_text("b")
        assert doc.revision == revision + 1
        assert doc.get_text() == "b"

    def test_apply_edit(self):
        doc = MemoryDocument("Hello World")
        doc.apply_edit(Span(0, 6, 0, 11), "there")
        assert doc.get_text() == "Hello there"


class TestFileDocument:
    """Documents backed by a file on disk"""

    def test_reads_file(self, tmp_path):
        path = tmp_path / "notes.md"
        path.write_text("# Notes\n", encoding="utf-8")
        doc = FileDocument(path)
        assert doc.get_text() == "# Notes\n"
        assert doc.uri == path.resolve().as_uri()

    def test_replace_writes_file(self, tmp_path):
        path = tmp_path / "notes.md"
        path.write_text("# Notes\n", encoding="utf-8")
        doc = FileDocument(path)
        doc.replace_text("# Changed\n")
        assert path.read_text(encoding="utf-8") == "# Changed\n"

    def test_crlf_preserved(self, tmp_path):
        path = tmp_path / "notes.md"
        path.write_bytes(b"# Notes\r\nText\r\n")
        doc = FileDocument(path)
        doc.replace_text(doc.get_text() + "More\r\n")
        assert path.read_bytes() == b"# Notes\r\nText\r\nMore\r\n"

    def test_reload_picks_up_external_edit(self, tmp_path):
        path = tmp_path / "notes.md"
        path.write_text("# Notes\n", encoding="utf-8")
        doc = FileDocument(path)
        revision = doc.revision

        doc.reload()
        assert doc.revision == revision

        path.write_text("# Edited\n", encoding="utf-8")
        doc.reload()
        assert doc.revision == revision + 1
        assert doc.get_text() == "# Edited\n"

    def test_comments_survive_reopen(self, tmp_path, ids):
        """A second process sees what the first one saved"""
        path = tmp_path / "notes.md"
        path.write_text("# Hello World\n", encoding="utf-8")
        comment = CommentStore(id_factory=ids).add(
            FileDocument(path), Span(0, 2, 0, 7), "Review this", "alice"
        )
        reopened = CommentStore().get_comments(FileDocument(path))
        assert reopened == [comment]


class TestEnvironmentAuthorProvider:
    """Author resolution"""

    def test_satisfies_protocol(self):
        assert isinstance(EnvironmentAuthorProvider(), AuthorProvider)

    def test_environment_variable(self, monkeypatch):
        monkeypatch.setenv("MARKCO_AUTHOR", " alice ")
        assert EnvironmentAuthorProvider().get_author() == "alice"

    def test_custom_variable(self, monkeypatch):
        monkeypatch.setenv("REVIEWER", "bob")
        assert EnvironmentAuthorProvider(env_var="REVIEWER").get_author() == "bob"

    def test_login_name(self, monkeypatch):
        monkeypatch.delenv("MARKCO_AUTHOR", raising=False)
        monkeypatch.setattr("getpass.getuser", lambda: "carol")
        assert EnvironmentAuthorProvider().get_author() == "carol"

    def test_fallback(self, monkeypatch):
        monkeypatch.delenv("MARKCO_AUTHOR", raising=False)

        def no_user():
            raise OSError("no login name")

        monkeypatch.setattr("getpass.getuser", no_user)
        assert EnvironmentAuthorProvider(fallback="anonymous").get_author() == "anonymous"
