"""Consistency checks over the whole folder tree.

The store cannot enforce that every record's parent exists, so drift
introduced out of band (a crashed writer, a hand-edited database) is only
visible by walking the tree. The validator recomputes the tree from the root
and compares it against the stored record counts. It never repairs anything.
"""

import logging
from typing import List, Optional

from notetree.config import ROOT_PATH
from notetree.exceptions import NoteTreeError
from notetree.models.schema import PathKind, TreeNode, TreeReport
from notetree.observability import traced
from notetree.paths import classify, enumerate_ancestors, join_folder
from notetree.services.folder_manager import FolderManager
from notetree.services.note_manager import NoteManager
from notetree.storage.record_store import RecordStore, StoreTransaction

logger = logging.getLogger(__name__)

TREE_BLOCK = "|  "
TREE_LINK = "+--"


class TreeValidator:
    """Diagnostic walker for the folder tree."""

    def __init__(
        self,
        store: RecordStore,
        folders: Optional[FolderManager] = None,
        notes: Optional[NoteManager] = None,
    ):
        self.store = store
        self.folders = folders or FolderManager(store)
        self.notes = notes or NoteManager(store, self.folders)

    def _walk(self, tx: StoreTransaction, directory: str) -> List[TreeNode]:
        nodes = []
        for folder in tx.folders.find_many({"parent_path": directory}):
            nodes.append(
                TreeNode(
                    name=folder.name,
                    kind=PathKind.FOLDER,
                    directory=directory,
                    children=self._walk(tx, join_folder(directory, folder.name)),
                )
            )
        for note in tx.notes.find_many({"directory": directory}):
            nodes.append(TreeNode(name=note.name, kind=PathKind.FILE, directory=directory))
        return nodes

    def walk_from_root(self) -> List[TreeNode]:
        """Every folder and note reachable from the root, as nested nodes."""
        with self.store.transaction("walk_tree") as tx:
            return self._walk(tx, ROOT_PATH)

    def first_missing_segment(self, path: str) -> Optional[str]:
        """Return the first ancestor of ``path`` (or the path) that does not exist.

        Returns None when every segment from the root down exists.
        """
        for segment in enumerate_ancestors(path):
            if classify(segment) == PathKind.FOLDER:
                present = self.folders.exists(segment)
            else:
                present = self.notes.exists(segment)
            if not present:
                return segment
        return None

    def validate_path(self, path: str) -> bool:
        """Check that every segment from the root to ``path`` exists."""
        missing = self.first_missing_segment(path)
        if missing is None:
            return True
        kind = "folder" if classify(missing) == PathKind.FOLDER else "file"
        logger.warning(f'The {kind} path "{missing}" does not exist!')
        return False

    @traced("inspect_tree")
    def inspect_tree(self) -> TreeReport:
        """Compare stored records against the tree reachable from the root."""
        report = TreeReport()
        try:
            report.stored_folders, report.stored_notes = self.store.counts()
            reachable = self.folders.descendants(ROOT_PATH)
            report.reachable_folders = len(reachable.folders)
            report.reachable_notes = len(reachable.notes)
            for path in reachable.all_paths():
                if not self.validate_path(path):
                    logger.error(
                        f'Path "{path}" failed validation. The tree is possibly corrupted.'
                    )
                    report.invalid_paths.append(path)
        except NoteTreeError as e:
            logger.error(f"Tree inspection aborted: {e}")
            report.error = str(e)
        return report

    def validate_tree(self) -> bool:
        """True when the stored records form exactly the tree under the root."""
        return self.inspect_tree().is_valid

    def render_tree(self) -> str:
        """Indented text rendering of the tree, starting with ``root``."""
        lines = ["root"]

        def render(nodes: List[TreeNode], level: int) -> None:
            for node in nodes:
                label = "Folder" if node.kind == PathKind.FOLDER else "File"
                lines.append(f"{TREE_BLOCK * (level - 1)}{TREE_LINK}{node.name} ({label})")
                render(node.children, level + 1)

        render(self.walk_from_root(), 1)
        return "\n".join(lines)

    def check_on_startup(self) -> bool:
        """Validate the tree and log the verdict."""
        logger.info("Validating file tree...")
        report = self.inspect_tree()
        if report.is_valid:
            logger.info(
                f"Tree clean. {report.stored_folders} folders and "
                f"{report.stored_notes} notes found!"
            )
        else:
            logger.error(f"Tree is corrupted. {report.to_dict()}")
        return report.is_valid
