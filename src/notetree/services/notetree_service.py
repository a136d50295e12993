"""Inbound API of the NoteTree core.

Every call names the caller ``Identity`` first. Authentication itself happens
in front of this layer; here a missing identity is simply refused. After a
mutation commits, the matching change events are published with the caller's
session id as their source.
"""

import logging
from typing import Any, List, Optional

from notetree.config import config
from notetree.exceptions import AuthenticationError
from notetree.models.schema import (
    ChildEntry,
    Folder,
    Identity,
    Note,
    PathKind,
    TreeNode,
    TreeReport,
)
from notetree.paths import parent_of_folder, parent_of_note
from notetree.services.folder_manager import FolderManager
from notetree.services.note_manager import NoteManager
from notetree.services.notifier import ChangeNotifier
from notetree.services.tree_validator import TreeValidator
from notetree.storage.record_store import RecordStore

logger = logging.getLogger(__name__)


class NoteTreeService:
    """Path-oriented facade over the folder and note managers."""

    def __init__(
        self,
        store: Optional[RecordStore] = None,
        engine: Optional[Any] = None,
        notifier: Optional[ChangeNotifier] = None,
    ):
        """Initialize the service.

        Args:
            store: Record store to work on. Created from ``engine`` if None.
            engine: Pre-configured SQLAlchemy engine. Only used when store is None.
            notifier: Hub for outbound change events. A private one if None.
        """
        self.store = store or RecordStore(engine=engine)
        self.notifier = notifier or ChangeNotifier()
        self.folders = FolderManager(self.store)
        self.notes = NoteManager(self.store, self.folders)
        self.validator = TreeValidator(self.store, self.folders, self.notes)

    @staticmethod
    def _require_identity(identity: Optional[Identity]) -> Identity:
        if not isinstance(identity, Identity) or not identity.username.strip():
            raise AuthenticationError()
        return identity

    def _directories_changed(self, identity: Identity, *paths: str) -> None:
        for path in dict.fromkeys(paths):
            self.notifier.directory_changed(path, source=identity.session_id)

    # ---- reads ----

    def list_children(self, identity: Identity, path: str) -> List[ChildEntry]:
        """Direct children of the folder at ``path``."""
        self._require_identity(identity)
        return self.folders.children(path)

    def open_note(self, identity: Identity, path: str) -> Note:
        """The note at ``path``, content included."""
        self._require_identity(identity)
        return self.notes.get_by_path(path)

    def tree(self, identity: Identity) -> List[TreeNode]:
        """The whole tree as nested nodes below the root."""
        self._require_identity(identity)
        return self.validator.walk_from_root()

    def render_tree(self, identity: Identity) -> str:
        self._require_identity(identity)
        return self.validator.render_tree()

    def validate_tree(self, identity: Identity) -> TreeReport:
        """Run the consistency check and return its report."""
        self._require_identity(identity)
        return self.validator.inspect_tree()

    # ---- note mutations ----

    def create_note(
        self,
        identity: Identity,
        parent_path: str,
        name: str,
        content: Optional[str] = None,
    ) -> Note:
        """Create a note. Content defaults to ``config.default_note_content``."""
        caller = self._require_identity(identity)
        if content is None:
            content = config.default_note_content
        note = self.notes.create(parent_path, name, content)
        self._directories_changed(caller, parent_path)
        return note

    def update_note_content(self, identity: Identity, path: str, content: str) -> Note:
        caller = self._require_identity(identity)
        note = self.notes.update_content(path, content)
        self.notifier.file_changed(path, PathKind.FILE, source=caller.session_id)
        return note

    def rename_note(self, identity: Identity, old_full_path: str, new_name: str) -> str:
        """Rename a note. Returns its new full path."""
        caller = self._require_identity(identity)
        new_path = self.notes.rename(old_full_path, new_name)
        self._directories_changed(caller, parent_of_note(old_full_path))
        self.notifier.note_renamed(old_full_path, new_path, source=caller.session_id)
        return new_path

    def move_note(self, identity: Identity, path: str, dest_directory: str) -> str:
        """Move a note into another folder. Returns its new full path."""
        caller = self._require_identity(identity)
        new_path = self.notes.move(path, dest_directory)
        self._directories_changed(caller, parent_of_note(path), dest_directory)
        return new_path

    def delete_note(self, identity: Identity, path: str) -> None:
        caller = self._require_identity(identity)
        self.notes.delete(path)
        self._directories_changed(caller, parent_of_note(path))

    # ---- folder mutations ----

    def create_folder(self, identity: Identity, parent_path: str, name: str) -> Folder:
        caller = self._require_identity(identity)
        folder = self.folders.create(parent_path, name)
        self._directories_changed(caller, parent_path)
        return folder

    def rename_folder(self, identity: Identity, old_full_path: str, new_name: str) -> str:
        """Rename a folder. Returns its new full path."""
        caller = self._require_identity(identity)
        new_path = self.folders.rename(old_full_path, new_name)
        self._directories_changed(caller, parent_of_folder(old_full_path))
        self.notifier.folder_renamed(old_full_path, new_path, source=caller.session_id)
        return new_path

    def move_folder(self, identity: Identity, source_path: str, dest_parent_path: str) -> str:
        """Move a folder into another folder. Returns its new full path."""
        caller = self._require_identity(identity)
        new_path = self.folders.move(source_path, dest_parent_path)
        self._directories_changed(caller, parent_of_folder(source_path), dest_parent_path)
        return new_path

    def move_folder_content(self, identity: Identity, source_path: str, dest_path: str) -> int:
        """Move everything inside one folder into another. Returns records moved."""
        caller = self._require_identity(identity)
        moved = self.folders.move_content(source_path, dest_path)
        self._directories_changed(caller, source_path, dest_path)
        return moved

    def delete_folder(self, identity: Identity, path: str) -> None:
        caller = self._require_identity(identity)
        self.folders.delete(path)
        self._directories_changed(caller, parent_of_folder(path))

    def empty_folder(self, identity: Identity, path: str) -> int:
        """Delete everything inside a folder. Returns records deleted."""
        caller = self._require_identity(identity)
        removed = self.folders.empty(path)
        self._directories_changed(caller, path)
        return removed
