"""
Tests for the MCP server factory
"""

import asyncio

from markco.server import create_mcp_server


class StaticAuthor:
    def get_author(self):
        return "alice"


class TestCreateServer:
    """Server construction for one document"""

    def test_registers_tools(self, tmp_path):
        path = tmp_path / "doc.md"
        path.write_text("# Hello World\n", encoding="utf-8")
        mcp = create_mcp_server(path, authors=StaticAuthor())

        names = {tool.name for tool in asyncio.run(mcp.list_tools())}
        assert names == {
            "list_comments",
            "add_comment",
            "reply",
            "resolve_comment",
            "delete_comment",
            "toggle_thumbs_up",
            "reconcile",
        }

    def test_document_untouched_until_a_tool_runs(self, tmp_path):
        path = tmp_path / "doc.md"
        path.write_text("# Hello World\n", encoding="utf-8")
        create_mcp_server(path)
        assert path.read_text(encoding="utf-8") == "# Hello World\n"
