"""
NoteTree MCP - a folder/note hierarchy over a flat record store, served over MCP.

Folders and notes are stored as independent, flatly keyed records. This package
maps filesystem-like paths ("/root/Folder/Note") onto those records and keeps
the virtual tree consistent across structural mutations.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notetree-mcp")
except PackageNotFoundError:
    __version__ = "0.3.0"
