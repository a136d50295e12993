"""Note operations over the flat record store."""

import logging
from typing import Optional

from notetree.exceptions import (
    AlreadyExistsError,
    ErrorCode,
    FolderNotFoundError,
    NoteNotFoundError,
    ParentNotFoundError,
)
from notetree.models.schema import Note, PathKind, utc_now
from notetree.paths import (
    ensure_path,
    join_note,
    name_of_note,
    parent_of_note,
    validate_name,
)
from notetree.services.folder_manager import FolderManager, folder_exists, note_key
from notetree.storage.record_store import NoteRecords, RecordStore, StoreTransaction

logger = logging.getLogger(__name__)


class NoteManager:
    """Creates, reads, updates and relocates notes."""

    def __init__(self, store: RecordStore, folders: Optional[FolderManager] = None):
        """Initialize the manager.

        Args:
            store: Record store shared with the folder manager.
            folders: Folder manager working on the same store. Created if None.
        """
        self.store = store
        self.folders = folders or FolderManager(store)

    def _find(self, tx: StoreTransaction, note_path: str) -> Note:
        note = tx.notes.find_one(note_key(note_path))
        if note is None:
            raise NoteNotFoundError(note_path)
        return note

    def exists(self, path_or_directory: str, name: Optional[str] = None) -> bool:
        """Whether a note exists.

        Accepts either a full note path, or a directory and a note name.
        """
        if name is None:
            ensure_path(path_or_directory, PathKind.FILE)
            key = note_key(path_or_directory)
        else:
            ensure_path(path_or_directory, PathKind.FOLDER)
            key = NoteRecords.key(path_or_directory, name)
        with self.store.transaction("note_exists") as tx:
            return tx.notes.find_one(key) is not None

    def get_by_path(self, note_path: str) -> Note:
        """Get a note by its full path.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        ensure_path(note_path, PathKind.FILE)
        with self.store.transaction("get_note") as tx:
            return self._find(tx, note_path)

    def create(self, directory: str, name: str, content: str = "") -> Note:
        """Create note ``name`` inside the folder ``directory``.

        Raises:
            InvalidNameError: If ``name`` is empty or has a banned symbol.
            ParentNotFoundError: If the folder does not exist.
            AlreadyExistsError: If the note already exists.
        """
        ensure_path(directory, PathKind.FOLDER)
        validate_name(name, PathKind.FILE)
        note_path = join_note(directory, name)

        with self.store.locks.hold(note_path), self.store.transaction(
            "create_note"
        ) as tx:
            if not folder_exists(tx, directory):
                raise ParentNotFoundError(directory)
            if tx.notes.find_one(NoteRecords.key(directory, name)) is not None:
                raise AlreadyExistsError(
                    note_path,
                    f"The note '{name}' already exists in '{directory}'.",
                    code=ErrorCode.NOTE_ALREADY_EXISTS,
                )
            note = tx.notes.insert(Note(name=name, directory=directory, content=content))

        logger.info(f"Created note {note_path}")
        return note

    def update_content(self, note_path: str, content: str) -> Note:
        """Replace the content of a note.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        ensure_path(note_path, PathKind.FILE)
        with self.store.locks.hold(note_path), self.store.transaction(
            "update_note"
        ) as tx:
            note = self._find(tx, note_path)
            now = utc_now()
            tx.notes.update_fields(note_key(note_path), {"content": content, "updated_at": now})

        logger.debug(f"Updated content of {note_path} ({len(content)} chars)")
        return note.model_copy(update={"content": content, "updated_at": now})

    def rename(self, note_path: str, new_name: str) -> str:
        """Rename a note inside its folder.

        Returns:
            The new full path of the note.

        Raises:
            InvalidNameError: If ``new_name`` is empty or has a banned symbol.
            NoteNotFoundError: If the note does not exist.
            AlreadyExistsError: If the folder already has a note ``new_name``.
        """
        ensure_path(note_path, PathKind.FILE)
        validate_name(new_name, PathKind.FILE)
        directory = parent_of_note(note_path)
        new_path = join_note(directory, new_name)

        with self.store.locks.hold(note_path, new_path), self.store.transaction(
            "rename_note"
        ) as tx:
            self._find(tx, note_path)
            if new_path != note_path:
                if tx.notes.find_one(NoteRecords.key(directory, new_name)) is not None:
                    raise AlreadyExistsError(
                        new_path,
                        f"A note named '{new_name}' already exists in '{directory}'.",
                        code=ErrorCode.NOTE_ALREADY_EXISTS,
                    )
                tx.notes.update_fields(note_key(note_path), {"name": new_name})

        logger.info(f"Renamed note {note_path} -> {new_path}")
        return new_path

    def move(self, note_path: str, dest_directory: str) -> str:
        """Move a note into another folder.

        Returns:
            The new full path of the note.

        Raises:
            NoteNotFoundError: If the note does not exist.
            FolderNotFoundError: If the destination folder does not exist.
            AlreadyExistsError: If the destination already has a note with
                the same name.
        """
        ensure_path(note_path, PathKind.FILE)
        ensure_path(dest_directory, PathKind.FOLDER)
        new_path = join_note(dest_directory, name_of_note(note_path))

        with self.store.locks.hold(note_path, new_path), self.store.transaction(
            "move_note"
        ) as tx:
            note = self._find(tx, note_path)
            if not folder_exists(tx, dest_directory):
                raise FolderNotFoundError(dest_directory)
            if tx.notes.find_one(NoteRecords.key(dest_directory, note.name)) is not None:
                raise AlreadyExistsError(
                    new_path,
                    f"A note named '{note.name}' already exists in '{dest_directory}'.",
                    code=ErrorCode.NOTE_ALREADY_EXISTS,
                )
            tx.notes.update_fields(note_key(note_path), {"directory": dest_directory})

        logger.info(f"Moved note {note_path} -> {new_path}")
        return new_path

    def delete(self, note_path: str) -> None:
        """Delete a note.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        ensure_path(note_path, PathKind.FILE)
        with self.store.locks.hold(note_path), self.store.transaction(
            "delete_note"
        ) as tx:
            if not tx.notes.delete_one(note_key(note_path)):
                raise NoteNotFoundError(note_path)

        logger.info(f"Deleted note {note_path}")
