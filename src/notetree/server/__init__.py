"""MCP server surface for the NoteTree server."""
