"""MCP server implementation for the NoteTree."""

import json
import logging
import uuid
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from notetree.config import ROOT_PATH, config
from notetree.exceptions import NoteTreeError
from notetree.models.schema import ChildEntry, Identity, PathKind
from notetree.observability import metrics, timed_operation
from notetree.services.notetree_service import NoteTreeService

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255
MAX_CONTENT_LENGTH = 1_000_000  # 1 MB


def _validate_input_lengths(
    name: Optional[str] = None, content: Optional[str] = None
) -> None:
    """Validate input string lengths at the MCP boundary."""
    if name and len(name) > MAX_NAME_LENGTH:
        raise ValueError(f"Name exceeds maximum length of {MAX_NAME_LENGTH} characters")
    if content and len(content) > MAX_CONTENT_LENGTH:
        raise ValueError(
            f"Content exceeds maximum length of {MAX_CONTENT_LENGTH} characters"
        )


def _format_children(path: str, entries: List[ChildEntry]) -> str:
    if not entries:
        return f"{path} is empty."
    lines = [f"Contents of {path} ({len(entries)} entries):"]
    for entry in entries:
        label = "Folder" if entry.kind == PathKind.FOLDER else "Note"
        suffix = "/" if entry.kind == PathKind.FOLDER else ""
        lines.append(f"  {entry.name}{suffix} ({label})")
    return "\n".join(lines)


class NoteTreeMcpServer:
    """MCP server for the NoteTree."""

    def __init__(self, engine=None):
        """Initialize the MCP server.

        Args:
            engine: Pre-configured SQLAlchemy engine. When None, the service
                creates one from config.
        """
        self.mcp = FastMCP(config.server_name)
        self.service = NoteTreeService(engine=engine)
        # Every call through this server acts for the configured user; the
        # session id tags the change events it causes.
        self.identity = Identity(
            username=config.server_user, session_id=f"mcp-{uuid.uuid4().hex[:8]}"
        )
        self._register_tools()
        logger.info(f"NoteTree MCP server initialized for user '{self.identity.username}'")

    def format_error_response(self, error: Exception) -> str:
        """Format an error response in a consistent way.

        Domain errors are shown as is; anything else is logged with a short
        reference id and returned without internals.
        """
        error_id = uuid.uuid4().hex[:8]

        if isinstance(error, NoteTreeError):
            logger.error(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return f"Error: {error.message}"
        elif isinstance(error, ValueError):
            logger.error(f"Validation error [{error_id}]: {error}")
            return f"Error: Invalid input (ref: {error_id})"
        else:
            logger.error(f"Unexpected error [{error_id}]: {error}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _register_tools(self) -> None:
        """Register MCP tools."""

        @self.mcp.tool(name="nt_list_children")
        def nt_list_children(path: str = ROOT_PATH) -> str:
            """List the folders and notes directly inside a folder.
            Args:
                path: Folder path, always ending with '/', e.g. '/root/Projects/'
            """
            with timed_operation("nt_list_children", path=path) as op:
                try:
                    entries = self.service.list_children(self.identity, path)
                    op["result_count"] = len(entries)
                    return _format_children(path, entries)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_open_note")
        def nt_open_note(path: str) -> str:
            """Read a note.
            Args:
                path: Note path, never ending with '/', e.g. '/root/Projects/Plan'
            """
            with timed_operation("nt_open_note", path=path):
                try:
                    note = self.service.open_note(self.identity, path)
                    return (
                        f"# {note.full_path}\n"
                        f"Updated: {note.updated_at.isoformat()}\n\n"
                        f"{note.content}"
                    )
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_update_note")
        def nt_update_note(path: str, content: str) -> str:
            """Replace the content of a note.
            Args:
                path: Note path
                content: New content of the note
            """
            with timed_operation("nt_update_note", path=path) as op:
                try:
                    _validate_input_lengths(content=content)
                    note = self.service.update_note_content(self.identity, path, content)
                    op["content_length"] = len(note.content)
                    return f"Note {note.full_path} updated ({len(note.content)} characters)."
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_create_folder")
        def nt_create_folder(parent_path: str, name: str) -> str:
            """Create a folder.
            Args:
                parent_path: Folder to create it in, e.g. '/root/'
                name: Name of the new folder (no ':/$\\?<>')
            """
            with timed_operation("nt_create_folder", parent_path=parent_path, name=name):
                try:
                    _validate_input_lengths(name=name)
                    folder = self.service.create_folder(self.identity, parent_path, name)
                    return f"Folder created: {folder.full_path}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_create_note")
        def nt_create_note(
            parent_path: str, name: str, content: Optional[str] = None
        ) -> str:
            """Create a note.
            Args:
                parent_path: Folder to create it in, e.g. '/root/Projects/'
                name: Name of the new note (no ':/$\\?<>')
                content: Initial content (optional, defaults to a '# **New Note**' heading)
            """
            with timed_operation("nt_create_note", parent_path=parent_path, name=name):
                try:
                    _validate_input_lengths(name=name, content=content)
                    note = self.service.create_note(
                        self.identity, parent_path, name, content
                    )
                    return f"Note created: {note.full_path}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_rename_note")
        def nt_rename_note(path: str, new_name: str) -> str:
            """Rename a note within its folder.
            Args:
                path: Current note path
                new_name: New note name
            """
            with timed_operation("nt_rename_note", path=path, new_name=new_name):
                try:
                    _validate_input_lengths(name=new_name)
                    new_path = self.service.rename_note(self.identity, path, new_name)
                    return f"Note renamed: {path} -> {new_path}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_rename_folder")
        def nt_rename_folder(path: str, new_name: str) -> str:
            """Rename a folder. Everything inside it moves along.
            Args:
                path: Current folder path, ending with '/'
                new_name: New folder name
            """
            with timed_operation("nt_rename_folder", path=path, new_name=new_name):
                try:
                    _validate_input_lengths(name=new_name)
                    new_path = self.service.rename_folder(self.identity, path, new_name)
                    return f"Folder renamed: {path} -> {new_path}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_move_note")
        def nt_move_note(path: str, dest_folder: str) -> str:
            """Move a note into another folder.
            Args:
                path: Note path
                dest_folder: Destination folder path, ending with '/'
            """
            with timed_operation("nt_move_note", path=path, dest_folder=dest_folder):
                try:
                    new_path = self.service.move_note(self.identity, path, dest_folder)
                    return f"Note moved: {path} -> {new_path}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_move_folder")
        def nt_move_folder(path: str, dest_parent: str) -> str:
            """Move a folder, with everything inside it, into another folder.
            Args:
                path: Folder path, ending with '/'
                dest_parent: Folder to move it into, ending with '/'
            """
            with timed_operation("nt_move_folder", path=path, dest_parent=dest_parent):
                try:
                    new_path = self.service.move_folder(self.identity, path, dest_parent)
                    return f"Folder moved: {path} -> {new_path}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_move_folder_content")
        def nt_move_folder_content(source_path: str, dest_path: str) -> str:
            """Move everything inside one folder into another, keeping the source folder.
            Args:
                source_path: Folder whose content is moved
                dest_path: Folder receiving the content
            """
            with timed_operation(
                "nt_move_folder_content", source_path=source_path, dest_path=dest_path
            ) as op:
                try:
                    moved = self.service.move_folder_content(
                        self.identity, source_path, dest_path
                    )
                    op["result_count"] = moved
                    return f"Moved {moved} items from {source_path} to {dest_path}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_delete_note")
        def nt_delete_note(path: str) -> str:
            """Delete a note.
            Args:
                path: Note path
            """
            with timed_operation("nt_delete_note", path=path):
                try:
                    self.service.delete_note(self.identity, path)
                    return f"Note deleted: {path}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_delete_folder")
        def nt_delete_folder(path: str, confirm: bool = False) -> str:
            """Delete a folder and everything inside it.
            Args:
                path: Folder path, ending with '/'
                confirm: Must be True to actually delete
            """
            with timed_operation("nt_delete_folder", path=path):
                try:
                    if not confirm:
                        return (
                            f"Deleting {path} removes everything inside it. "
                            "Call again with confirm=True to proceed."
                        )
                    self.service.delete_folder(self.identity, path)
                    return f"Folder deleted: {path}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_empty_folder")
        def nt_empty_folder(path: str, confirm: bool = False) -> str:
            """Delete everything inside a folder, keeping the folder itself.
            Args:
                path: Folder path, ending with '/'. '/root/' empties the whole tree.
                confirm: Must be True to actually delete
            """
            with timed_operation("nt_empty_folder", path=path) as op:
                try:
                    if not confirm:
                        return (
                            f"Emptying {path} removes everything inside it. "
                            "Call again with confirm=True to proceed."
                        )
                    removed = self.service.empty_folder(self.identity, path)
                    op["result_count"] = removed
                    return f"Removed {removed} items from {path}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_tree")
        def nt_tree() -> str:
            """Show the whole folder tree."""
            with timed_operation("nt_tree"):
                try:
                    return self.service.render_tree(self.identity)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_validate_tree")
        def nt_validate_tree() -> str:
            """Check that stored folders and notes form one consistent tree."""
            with timed_operation("nt_validate_tree"):
                try:
                    report = self.service.validate_tree(self.identity)
                    verdict = "Tree clean." if report.is_valid else "Tree is corrupted."
                    return f"{verdict}\n{json.dumps(report.to_dict(), indent=2)}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nt_status")
        def nt_status() -> str:
            """Show record counts and operation metrics."""
            with timed_operation("nt_status"):
                try:
                    folders, notes = self.service.store.counts()
                    status = {
                        "folders": folders,
                        "notes": notes,
                        "summary": metrics.get_summary(),
                        "operations": metrics.get_metrics(),
                    }
                    return json.dumps(status, indent=2)
                except Exception as e:
                    return self.format_error_response(e)

    def run(self) -> None:
        """Run the MCP server."""
        self.mcp.run()
