"""Tests for the NoteTreeService facade."""
import pytest

from notetree.exceptions import (
    AlreadyExistsError,
    AuthenticationError,
    ErrorCode,
    NoteNotFoundError,
)
from notetree.models.schema import ChangeType, ChildEntry, Identity, PathKind


class TestIdentity:
    """Every call requires a caller identity."""

    def test_missing_identity(self, service):
        with pytest.raises(AuthenticationError) as exc_info:
            service.list_children(None, "/root/")
        assert exc_info.value.code == ErrorCode.IDENTITY_REQUIRED

    def test_blank_username(self, service):
        with pytest.raises(AuthenticationError):
            service.create_folder(Identity(username="  "), "/root/", "a")
        assert service.store.counts() == (0, 0)

    def test_refused_before_any_event(self, service, events):
        with pytest.raises(AuthenticationError):
            service.create_folder(None, "/root/", "a")
        assert events == []


class TestScenario:
    """End-to-end behavior through the facade."""

    def test_rename_carries_subtree(self, service, identity):
        """Renaming a folder moves everything below it to the new path."""
        service.create_folder(identity, "/root/", "A")
        service.create_folder(identity, "/root/A/", "B")
        service.create_note(identity, "/root/A/B/", "n", "content")

        assert service.rename_folder(identity, "/root/A/", "Z") == "/root/Z/"

        assert service.list_children(identity, "/root/") == [
            ChildEntry(name="Z", kind=PathKind.FOLDER)
        ]
        assert service.open_note(identity, "/root/Z/B/n").content == "content"
        with pytest.raises(NoteNotFoundError):
            service.open_note(identity, "/root/A/B/n")
        assert service.validate_tree(identity).is_valid

    def test_default_note_content(self, service, identity):
        note = service.create_note(identity, "/root/", "fresh")
        assert note.content == "# **New Note**"
        assert service.open_note(identity, "/root/fresh").content == "# **New Note**"

    def test_explicit_empty_content_kept(self, service, identity):
        service.create_note(identity, "/root/", "blank", "")
        assert service.open_note(identity, "/root/blank").content == ""

    def test_tree_and_render(self, service, identity):
        service.create_folder(identity, "/root/", "a")
        service.create_note(identity, "/root/a/", "n")
        nodes = service.tree(identity)
        assert [n.full_path for n in nodes] == ["/root/a/"]
        assert service.render_tree(identity) == "root\n+--a (Folder)\n|  +--n (File)"

    def test_move_and_empty(self, service, identity):
        service.create_folder(identity, "/root/", "src")
        service.create_folder(identity, "/root/", "dst")
        service.create_note(identity, "/root/src/", "n")
        service.create_folder(identity, "/root/src/", "inner")

        assert service.move_folder_content(identity, "/root/src/", "/root/dst/") == 2
        assert service.list_children(identity, "/root/src/") == []
        assert service.move_note(identity, "/root/dst/n", "/root/") == "/root/n"
        assert service.move_folder(identity, "/root/dst/inner/", "/root/src/") == "/root/src/inner/"
        assert service.empty_folder(identity, "/root/src/") == 1
        service.delete_folder(identity, "/root/dst/")
        service.delete_note(identity, "/root/n")
        assert service.list_children(identity, "/root/") == [
            ChildEntry(name="src", kind=PathKind.FOLDER)
        ]


class TestEvents:
    """Change events published after mutations."""

    def test_create_note_event(self, service, identity, events):
        service.create_folder(identity, "/root/", "a")
        service.create_note(identity, "/root/a/", "n")
        assert [(e.type, e.path) for e in events] == [
            (ChangeType.DIRECTORY_CHANGED, "/root/"),
            (ChangeType.DIRECTORY_CHANGED, "/root/a/"),
        ]
        assert all(e.source == "socket-1" for e in events)

    def test_update_content_event(self, service, identity, events):
        service.create_note(identity, "/root/", "n")
        events.clear()
        service.update_note_content(identity, "/root/n", "new body")
        assert len(events) == 1
        assert events[0].type == ChangeType.FILE_CHANGED
        assert events[0].path == "/root/n"
        assert events[0].name == "n"
        assert events[0].kind == PathKind.FILE

    def test_rename_folder_events(self, service, identity, events):
        service.create_folder(identity, "/root/", "a")
        events.clear()
        service.rename_folder(identity, "/root/a/", "b")
        assert [e.type for e in events] == [
            ChangeType.DIRECTORY_CHANGED,
            ChangeType.FOLDER_RENAMED,
        ]
        renamed = events[1]
        assert (renamed.old_path, renamed.new_path) == ("/root/a/", "/root/b/")
        assert renamed.name == "b"

    def test_rename_note_events(self, service, identity, events):
        service.create_note(identity, "/root/", "n")
        events.clear()
        service.rename_note(identity, "/root/n", "m")
        assert events[0].path == "/root/"
        assert events[1].type == ChangeType.NOTE_RENAMED
        assert events[1].new_path == "/root/m"

    def test_move_note_notifies_both_folders(self, service, identity, events):
        service.create_folder(identity, "/root/", "a")
        service.create_note(identity, "/root/", "n")
        events.clear()
        service.move_note(identity, "/root/n", "/root/a/")
        assert [e.path for e in events] == ["/root/", "/root/a/"]

    def test_failed_mutation_publishes_nothing(self, service, identity, events):
        service.create_folder(identity, "/root/", "a")
        events.clear()
        with pytest.raises(AlreadyExistsError):
            service.create_folder(identity, "/root/", "a")
        assert events == []

    def test_failing_subscriber_does_not_fail_mutation(self, service, identity, events):
        def broken(event):
            raise RuntimeError("socket closed")

        service.notifier.subscribe(broken)
        service.create_folder(identity, "/root/", "a")
        assert service.folders.exists("/root/a/")
        assert len(events) == 1
