"""Tests for NoteManager."""
import pytest

from notetree.exceptions import (
    AlreadyExistsError,
    ErrorCode,
    FolderNotFoundError,
    InvalidNameError,
    InvalidPathError,
    NoteNotFoundError,
    ParentNotFoundError,
)


@pytest.fixture
def folders(folder_manager):
    folder_manager.create("/root/", "a")
    folder_manager.create("/root/", "b")
    return folder_manager


class TestCreateAndRead:
    """Tests for create, get_by_path and exists."""

    def test_create_and_get(self, folders, note_manager):
        note = note_manager.create("/root/a/", "n", "# hello")
        assert note.full_path == "/root/a/n"
        fetched = note_manager.get_by_path("/root/a/n")
        assert fetched.content == "# hello"
        assert fetched.directory == "/root/a/"

    def test_create_in_root(self, note_manager):
        note_manager.create("/root/", "top")
        assert note_manager.exists("/root/top")

    def test_exists_both_forms(self, folders, note_manager):
        note_manager.create("/root/a/", "n")
        assert note_manager.exists("/root/a/n")
        assert note_manager.exists("/root/a/", "n")
        assert not note_manager.exists("/root/b/n")
        assert not note_manager.exists("/root/b/", "n")

    def test_duplicate(self, folders, note_manager):
        note_manager.create("/root/a/", "n")
        with pytest.raises(AlreadyExistsError) as exc_info:
            note_manager.create("/root/a/", "n")
        assert exc_info.value.code == ErrorCode.NOTE_ALREADY_EXISTS

    def test_note_and_folder_may_share_a_name(self, folders, note_manager):
        note_manager.create("/root/", "a")
        assert note_manager.exists("/root/a")
        assert folders.exists("/root/a/")

    def test_missing_directory(self, note_manager):
        with pytest.raises(ParentNotFoundError):
            note_manager.create("/root/nope/", "n")

    def test_invalid_name(self, folders, note_manager):
        with pytest.raises(InvalidNameError):
            note_manager.create("/root/a/", "a:b")

    def test_get_missing(self, note_manager):
        with pytest.raises(NoteNotFoundError) as exc_info:
            note_manager.get_by_path("/root/missing")
        assert exc_info.value.code == ErrorCode.NOTE_NOT_FOUND

    def test_get_with_folder_path(self, note_manager):
        with pytest.raises(InvalidPathError):
            note_manager.get_by_path("/root/a/")


class TestUpdateContent:
    """Tests for update_content."""

    def test_update(self, folders, note_manager):
        created = note_manager.create("/root/a/", "n", "old")
        updated = note_manager.update_content("/root/a/n", "new")
        assert updated.content == "new"
        assert updated.updated_at >= created.updated_at
        assert note_manager.get_by_path("/root/a/n").content == "new"

    def test_update_missing(self, note_manager):
        with pytest.raises(NoteNotFoundError):
            note_manager.update_content("/root/missing", "x")


class TestRenameMoveDelete:
    """Tests for rename, move and delete."""

    def test_rename(self, folders, note_manager):
        note_manager.create("/root/a/", "n", "body")
        assert note_manager.rename("/root/a/n", "m") == "/root/a/m"
        assert not note_manager.exists("/root/a/n")
        assert note_manager.get_by_path("/root/a/m").content == "body"

    def test_rename_collision(self, folders, note_manager):
        note_manager.create("/root/a/", "n")
        note_manager.create("/root/a/", "m")
        with pytest.raises(AlreadyExistsError):
            note_manager.rename("/root/a/n", "m")

    def test_rename_same_name(self, folders, note_manager):
        note_manager.create("/root/a/", "n")
        assert note_manager.rename("/root/a/n", "n") == "/root/a/n"

    def test_rename_missing(self, note_manager):
        with pytest.raises(NoteNotFoundError):
            note_manager.rename("/root/missing", "m")

    def test_move(self, folders, note_manager):
        note_manager.create("/root/a/", "n", "body")
        assert note_manager.move("/root/a/n", "/root/b/") == "/root/b/n"
        assert not note_manager.exists("/root/a/n")
        assert note_manager.get_by_path("/root/b/n").content == "body"

    def test_move_collision(self, folders, note_manager):
        note_manager.create("/root/a/", "n")
        note_manager.create("/root/b/", "n")
        with pytest.raises(AlreadyExistsError):
            note_manager.move("/root/a/n", "/root/b/")

    def test_move_missing_destination(self, folders, note_manager):
        note_manager.create("/root/a/", "n")
        with pytest.raises(FolderNotFoundError):
            note_manager.move("/root/a/n", "/root/nope/")
        assert note_manager.exists("/root/a/n")

    def test_move_missing_note(self, folders, note_manager):
        with pytest.raises(NoteNotFoundError):
            note_manager.move("/root/a/missing", "/root/b/")

    def test_move_to_folder_path_required(self, folders, note_manager):
        note_manager.create("/root/a/", "n")
        with pytest.raises(InvalidPathError):
            note_manager.move("/root/a/n", "/root/b")

    def test_delete(self, folders, note_manager):
        note_manager.create("/root/a/", "n")
        note_manager.delete("/root/a/n")
        assert not note_manager.exists("/root/a/n")

    def test_delete_missing(self, note_manager):
        with pytest.raises(NoteNotFoundError):
            note_manager.delete("/root/missing")
