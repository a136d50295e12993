"""Folder operations over the flat record store.

Folders have no parent pointer, only the full path of the folder that
contains them. Every structural mutation therefore rewrites the
``parent_path``/``directory`` of the whole affected subtree. Each public
mutation holds the subtree locks of the paths it touches and runs inside a
single store transaction.
"""

import logging
from typing import Dict, List, Tuple

from notetree.exceptions import (
    AlreadyExistsError,
    ErrorCode,
    FolderNotFoundError,
    InvariantViolationError,
    ParentNotFoundError,
)
from notetree.models.schema import ChildEntry, Descendants, Folder, Note, PathKind
from notetree.paths import (
    ensure_path,
    is_descendant_of,
    is_root,
    join_folder,
    name_of_folder,
    name_of_note,
    parent_of_folder,
    parent_of_note,
    rebase,
    validate_name,
)
from notetree.storage.record_store import (
    FolderRecords,
    NoteRecords,
    RecordStore,
    StoreTransaction,
)

logger = logging.getLogger(__name__)


def folder_key(folder_path: str) -> Dict[str, str]:
    """Record filter for the folder at ``folder_path`` (never the root)."""
    return FolderRecords.key(parent_of_folder(folder_path), name_of_folder(folder_path))


def note_key(note_path: str) -> Dict[str, str]:
    """Record filter for the note at ``note_path``."""
    return NoteRecords.key(parent_of_note(note_path), name_of_note(note_path))


def folder_exists(tx: StoreTransaction, folder_path: str) -> bool:
    """Whether ``folder_path`` exists, read through an open transaction."""
    if is_root(folder_path):
        return True
    return tx.folders.find_one(folder_key(folder_path)) is not None


def _ensure_not_root(folder_path: str, action: str) -> None:
    if is_root(folder_path):
        raise InvariantViolationError(
            f"The root folder cannot be {action}.",
            path=folder_path,
            code=ErrorCode.ROOT_PROTECTED,
        )


class FolderManager:
    """Creates, lists and restructures folders."""

    def __init__(self, store: RecordStore):
        self.store = store

    # ---- queries ----

    def exists(self, folder_path: str) -> bool:
        """Whether the folder exists. The root always exists."""
        ensure_path(folder_path, PathKind.FOLDER)
        with self.store.transaction("folder_exists") as tx:
            return folder_exists(tx, folder_path)

    def descendants(self, folder_path: str) -> Descendants:
        """Full paths of every folder and note inside ``folder_path``.

        The folder itself is not included.

        Raises:
            FolderNotFoundError: If the folder does not exist.
        """
        ensure_path(folder_path, PathKind.FOLDER)
        with self.store.transaction("folder_descendants") as tx:
            return self._descendants(tx, folder_path)

    def children(self, folder_path: str) -> List[ChildEntry]:
        """Direct children of a folder: folders first, then notes, each by name.

        Raises:
            FolderNotFoundError: If the folder does not exist.
        """
        ensure_path(folder_path, PathKind.FOLDER)
        with self.store.transaction("folder_children") as tx:
            self._require(tx, folder_path)
            folders = tx.folders.find_many({"parent_path": folder_path})
            notes = tx.notes.find_many({"directory": folder_path})
        return [
            *(ChildEntry(name=f.name, kind=PathKind.FOLDER) for f in folders),
            *(ChildEntry(name=n.name, kind=PathKind.FILE) for n in notes),
        ]

    # ---- mutations ----

    def create(self, parent_path: str, name: str) -> Folder:
        """Create folder ``name`` inside ``parent_path``.

        Raises:
            InvalidNameError: If ``name`` is empty or has a banned symbol.
            ParentNotFoundError: If the parent folder does not exist.
            AlreadyExistsError: If the folder already exists.
        """
        ensure_path(parent_path, PathKind.FOLDER)
        validate_name(name, PathKind.FOLDER)
        full_path = join_folder(parent_path, name)

        with self.store.locks.hold(full_path), self.store.transaction(
            "create_folder"
        ) as tx:
            folder = self._create(tx, parent_path, name)

        logger.info(f"Created folder {full_path}")
        return folder

    def delete(self, folder_path: str) -> None:
        """Delete a folder together with everything inside it.

        Raises:
            InvariantViolationError: For the root folder.
            FolderNotFoundError: If the folder does not exist.
        """
        ensure_path(folder_path, PathKind.FOLDER)
        _ensure_not_root(folder_path, "deleted")

        with self.store.locks.hold(folder_path), self.store.transaction(
            "delete_folder"
        ) as tx:
            removed = self._delete(tx, folder_path)

        logger.info(f"Deleted folder {folder_path} ({removed} records inside)")

    def empty(self, folder_path: str) -> int:
        """Delete everything inside a folder but keep the folder.

        The root may be emptied.

        Returns:
            Number of records deleted.

        Raises:
            FolderNotFoundError: If the folder does not exist.
        """
        ensure_path(folder_path, PathKind.FOLDER)
        with self.store.locks.hold(folder_path), self.store.transaction(
            "empty_folder"
        ) as tx:
            self._require(tx, folder_path)
            removed = self._delete_descendants(tx, folder_path)

        logger.info(f"Emptied folder {folder_path} ({removed} records)")
        return removed

    def move(self, source_path: str, dest_parent_path: str) -> str:
        """Move a folder and its content into another folder.

        Creates the folder under the destination, moves the content across
        and deletes the source, all in one transaction.

        Returns:
            The new full path of the folder.

        Raises:
            InvariantViolationError: If the source is the root, or the
                destination is the source or lies inside it.
            FolderNotFoundError: If the source does not exist.
            ParentNotFoundError: If the destination does not exist.
            AlreadyExistsError: If the destination already has a folder
                with the same name.
        """
        ensure_path(source_path, PathKind.FOLDER)
        ensure_path(dest_parent_path, PathKind.FOLDER)
        _ensure_not_root(source_path, "moved")
        self._ensure_not_into_itself(source_path, dest_parent_path)

        name = name_of_folder(source_path)
        target_path = join_folder(dest_parent_path, name)

        with self.store.locks.hold(source_path, target_path), self.store.transaction(
            "move_folder"
        ) as tx:
            self._require(tx, source_path)
            self._create(tx, dest_parent_path, name)
            moved = self._move_content(tx, source_path, target_path)
            tx.folders.delete_one(folder_key(source_path))

        logger.info(f"Moved folder {source_path} -> {target_path} ({moved} records inside)")
        return target_path

    def move_content(self, source_path: str, dest_path: str) -> int:
        """Move everything inside ``source_path`` into ``dest_path``.

        The whole plan is checked for collisions before any record is
        rewritten; on a collision nothing is written.

        Returns:
            Number of records moved.

        Raises:
            InvariantViolationError: If the folders are the same, or the
                destination lies inside the source.
            FolderNotFoundError: If either folder does not exist.
            AlreadyExistsError: If a moved record would collide with an
                existing one.
        """
        ensure_path(source_path, PathKind.FOLDER)
        ensure_path(dest_path, PathKind.FOLDER)
        self._ensure_not_into_itself(source_path, dest_path)

        with self.store.locks.hold(source_path, dest_path), self.store.transaction(
            "move_folder_content"
        ) as tx:
            self._require(tx, source_path)
            self._require(tx, dest_path)
            moved = self._move_content(tx, source_path, dest_path)

        logger.info(f"Moved content of {source_path} -> {dest_path} ({moved} records)")
        return moved

    def rename(self, folder_path: str, new_name: str) -> str:
        """Rename a folder, rewriting the paths of everything inside it.

        Returns:
            The new full path of the folder.

        Raises:
            InvariantViolationError: For the root folder.
            InvalidNameError: If ``new_name`` is empty or has a banned symbol.
            FolderNotFoundError: If the folder does not exist.
            AlreadyExistsError: If a sibling already has ``new_name``.
        """
        ensure_path(folder_path, PathKind.FOLDER)
        _ensure_not_root(folder_path, "renamed")
        validate_name(new_name, PathKind.FOLDER)

        parent_path = parent_of_folder(folder_path)
        new_path = join_folder(parent_path, new_name)
        if new_path == folder_path:
            with self.store.transaction("rename_folder") as tx:
                self._require(tx, folder_path)
            return folder_path

        with self.store.locks.hold(folder_path, new_path), self.store.transaction(
            "rename_folder"
        ) as tx:
            self._require(tx, folder_path)
            if folder_exists(tx, new_path):
                raise AlreadyExistsError(
                    new_path,
                    f"A folder named '{new_name}' already exists in '{parent_path}'.",
                    code=ErrorCode.FOLDER_ALREADY_EXISTS,
                )

            descendants = self._descendants(tx, folder_path)
            folders = tx.folders.find_any([folder_key(p) for p in descendants.folders])
            notes = tx.notes.find_any([note_key(p) for p in descendants.notes])

            for folder in folders:
                tx.folders.update_fields(
                    FolderRecords.key(folder.parent_path, folder.name),
                    {"parent_path": rebase(folder.parent_path, folder_path, new_path)},
                )
            for note in notes:
                tx.notes.update_fields(
                    NoteRecords.key(note.directory, note.name),
                    {"directory": rebase(note.directory, folder_path, new_path)},
                )
            # The folder itself last, once nothing refers to its old path
            tx.folders.update_fields(folder_key(folder_path), {"name": new_name})

        logger.info(
            f"Renamed folder {folder_path} -> {new_path} "
            f"({len(folders)} folders, {len(notes)} notes rewritten)"
        )
        return new_path

    # ---- transaction-scoped helpers ----

    def _require(self, tx: StoreTransaction, folder_path: str) -> None:
        if not folder_exists(tx, folder_path):
            raise FolderNotFoundError(folder_path)

    @staticmethod
    def _ensure_not_into_itself(source_path: str, dest_path: str) -> None:
        if dest_path == source_path:
            raise InvariantViolationError(
                f"Cannot move '{source_path}' into itself.",
                path=source_path,
                code=ErrorCode.SELF_MOVE,
            )
        if is_descendant_of(source_path, dest_path):
            raise InvariantViolationError(
                f"Cannot move '{source_path}' into its own descendant '{dest_path}'.",
                path=dest_path,
                code=ErrorCode.CYCLE_DETECTED,
            )

    def _create(self, tx: StoreTransaction, parent_path: str, name: str) -> Folder:
        if not folder_exists(tx, parent_path):
            raise ParentNotFoundError(parent_path)
        full_path = join_folder(parent_path, name)
        if folder_exists(tx, full_path):
            raise AlreadyExistsError(
                full_path,
                f"The folder '{name}' already exists in '{parent_path}'.",
                code=ErrorCode.FOLDER_ALREADY_EXISTS,
            )
        return tx.folders.insert(Folder(name=name, parent_path=parent_path))

    def _descendants(self, tx: StoreTransaction, folder_path: str) -> Descendants:
        self._require(tx, folder_path)
        return Descendants(
            folders=[f.full_path for f in tx.folders.find_under(folder_path)],
            notes=[n.full_path for n in tx.notes.find_under(folder_path)],
        )

    def _delete_descendants(self, tx: StoreTransaction, folder_path: str) -> int:
        descendants = self._descendants(tx, folder_path)
        for note_path in descendants.notes:
            tx.notes.delete_one(note_key(note_path))
        for sub_path in descendants.folders:
            tx.folders.delete_one(folder_key(sub_path))
        return len(descendants.folders) + len(descendants.notes)

    def _delete(self, tx: StoreTransaction, folder_path: str) -> int:
        self._require(tx, folder_path)
        removed = self._delete_descendants(tx, folder_path)
        tx.folders.delete_one(folder_key(folder_path))
        return removed

    def _plan_move(
        self, tx: StoreTransaction, source_path: str, dest_path: str
    ) -> Tuple[List[Tuple[Folder, str]], List[Tuple[Note, str]]]:
        """Pair every record under ``source_path`` with its new parent path."""
        folder_moves = [
            (folder, rebase(folder.parent_path, source_path, dest_path))
            for folder in tx.folders.find_under(source_path)
        ]
        note_moves = [
            (note, rebase(note.directory, source_path, dest_path))
            for note in tx.notes.find_under(source_path)
        ]
        return folder_moves, note_moves

    def _move_content(self, tx: StoreTransaction, source_path: str, dest_path: str) -> int:
        folder_moves, note_moves = self._plan_move(tx, source_path, dest_path)

        folder_targets = [FolderRecords.key(new, f.name) for f, new in folder_moves]
        note_targets = [NoteRecords.key(new, n.name) for n, new in note_moves]
        clashes = [f.full_path for f in tx.folders.find_any(folder_targets)]
        clashes += [n.full_path for n in tx.notes.find_any(note_targets)]
        if clashes:
            first = sorted(clashes)[0]
            raise AlreadyExistsError(
                first,
                f"Cannot move content of '{source_path}' into '{dest_path}': "
                f"'{first}' already exists.",
                code=(
                    ErrorCode.FOLDER_ALREADY_EXISTS
                    if first.endswith("/")
                    else ErrorCode.NOTE_ALREADY_EXISTS
                ),
            )

        for folder, new_parent in folder_moves:
            tx.folders.update_fields(
                FolderRecords.key(folder.parent_path, folder.name),
                {"parent_path": new_parent},
            )
        for note, new_directory in note_moves:
            tx.notes.update_fields(
                NoteRecords.key(note.directory, note.name),
                {"directory": new_directory},
            )
        return len(folder_moves) + len(note_moves)
