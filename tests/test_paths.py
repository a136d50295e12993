"""Tests for the path grammar."""
import pytest

from notetree.exceptions import (
    ErrorCode,
    InvalidNameError,
    InvalidPathError,
    InvariantViolationError,
    WrongPathKindError,
)
from notetree.models.schema import PathKind
from notetree.paths import (
    check_path,
    classify,
    ensure_path,
    enumerate_ancestors,
    is_descendant_of,
    is_root,
    join_folder,
    join_note,
    name_of_folder,
    name_of_note,
    parent_of,
    parent_of_folder,
    parent_of_note,
    rebase,
    validate_name,
)


class TestCheckPath:
    """Tests for path grammar checks."""

    @pytest.mark.parametrize(
        "path",
        ["/root/", "/root/a/", "/root/a/b/", "/root/note", "/root/a/b/My Note"],
    )
    def test_valid_paths(self, path):
        """Well-formed paths pass."""
        assert check_path(path) is None
        ensure_path(path)

    @pytest.mark.parametrize(
        "path",
        ["", "root/", "/other/a/", "/root//a/", "/root/a//", "/roo/"],
    )
    def test_invalid_paths(self, path):
        """Malformed paths fail with InvalidPathError."""
        assert check_path(path) is not None
        with pytest.raises(InvalidPathError) as exc_info:
            ensure_path(path)
        assert exc_info.value.code == ErrorCode.INVALID_PATH

    def test_non_string_rejected(self):
        """Only strings are paths."""
        assert check_path(None) == "Paths must be a type of string."
        with pytest.raises(InvalidPathError):
            ensure_path(42)

    def test_expected_kind_suffix(self):
        """An expected kind requires the matching trailing separator."""
        assert check_path("/root/a/", PathKind.FILE) is not None
        assert check_path("/root/a", PathKind.FOLDER) is not None
        assert check_path("/root/a", PathKind.FILE) is None
        assert check_path("/root/a/", PathKind.FOLDER) is None

    def test_banned_symbol_in_component(self):
        """Components must be valid names."""
        assert check_path("/root/a:b/") is not None
        assert check_path("/root/a/what?") is not None
        assert check_path("/root/a$/note") is not None


class TestClassify:
    """Tests for classify and is_root."""

    def test_folder_and_file(self):
        assert classify("/root/") == PathKind.FOLDER
        assert classify("/root/f1/f2/") == PathKind.FOLDER
        assert classify("/root/f1/f2") == PathKind.FILE

    def test_classify_invalid(self):
        with pytest.raises(InvalidPathError):
            classify("/root//")

    def test_is_root(self):
        assert is_root("/root/")
        assert not is_root("/root/a/")


class TestValidateName:
    """Tests for name validation."""

    @pytest.mark.parametrize("symbol", [":", "/", "$", "\\", "?", "<", ">"])
    def test_banned_symbols(self, symbol):
        """Every banned symbol is rejected for both kinds."""
        for kind in (PathKind.FILE, PathKind.FOLDER):
            with pytest.raises(InvalidNameError) as exc_info:
                validate_name(f"bad{symbol}name", kind)
            assert exc_info.value.code == ErrorCode.INVALID_NAME

    def test_empty_name(self):
        with pytest.raises(InvalidNameError):
            validate_name("", PathKind.FOLDER)

    def test_valid_name(self):
        validate_name("Folder 1", PathKind.FOLDER)
        validate_name("my_note (draft) #2", PathKind.FILE)

    def test_any_kind_not_allowed(self):
        with pytest.raises(ValueError):
            validate_name("x", PathKind.ANY)

    def test_separate_banned_sets(self, monkeypatch):
        """File and folder names are checked against their own sets."""
        from notetree.config import config

        monkeypatch.setattr(config, "banned_file_name_symbols", ["/", "#"])
        validate_name("a#b", PathKind.FOLDER)
        with pytest.raises(InvalidNameError):
            validate_name("a#b", PathKind.FILE)


class TestDerivation:
    """Tests for names, parents and joins."""

    def test_names(self):
        assert name_of_note("/root/f1/f2/Note1") == "Note1"
        assert name_of_folder("/root/f1/f2/") == "f2"
        assert name_of_folder("/root/") == "root"

    def test_parents(self):
        assert parent_of_folder("/root/f1/f2/") == "/root/f1/"
        assert parent_of_folder("/root/f1/") == "/root/"
        assert parent_of_note("/root/f1/note") == "/root/f1/"
        assert parent_of_note("/root/note") == "/root/"
        assert parent_of("/root/f1/f2/") == "/root/f1/"
        assert parent_of("/root/f1/n") == "/root/f1/"

    def test_root_has_no_parent(self):
        with pytest.raises(InvariantViolationError):
            parent_of_folder("/root/")

    def test_wrong_kind(self):
        """Folder helpers refuse note paths and vice versa."""
        with pytest.raises(WrongPathKindError) as exc_info:
            name_of_note("/root/f1/")
        assert exc_info.value.code == ErrorCode.WRONG_PATH_KIND
        with pytest.raises(WrongPathKindError):
            name_of_folder("/root/f1")
        with pytest.raises(WrongPathKindError):
            parent_of_folder("/root/note")
        with pytest.raises(WrongPathKindError):
            parent_of_note("/root/f1/")

    def test_joins(self):
        assert join_folder("/root/a/", "b") == "/root/a/b/"
        assert join_note("/root/a/", "n") == "/root/a/n"


class TestContainment:
    """Tests for is_descendant_of and rebase."""

    def test_descendants(self):
        assert is_descendant_of("/root/a/", "/root/a/b/")
        assert is_descendant_of("/root/a/", "/root/a/b/c/note")
        assert is_descendant_of("/root/", "/root/a/")

    def test_not_its_own_descendant(self):
        assert not is_descendant_of("/root/a/", "/root/a/")

    def test_segment_wise_not_substring(self):
        """A folder named like an ancestor elsewhere in the tree is not inside it."""
        assert not is_descendant_of("/root/a/", "/root/x/root/a/")
        assert not is_descendant_of("/root/a/", "/root/ab/")
        assert not is_descendant_of("/root/a/b/", "/root/a/")

    def test_ancestor_must_be_folder(self):
        with pytest.raises(InvalidPathError):
            is_descendant_of("/root/a", "/root/a/b")

    def test_rebase(self):
        assert rebase("/root/a/b/", "/root/a/", "/root/z/") == "/root/z/b/"
        assert rebase("/root/a/", "/root/a/", "/root/z/") == "/root/z/"

    def test_rebase_outside_prefix(self):
        with pytest.raises(InvariantViolationError):
            rebase("/root/b/", "/root/a/", "/root/z/")


class TestEnumerateAncestors:
    """Tests for enumerate_ancestors."""

    def test_folder_path(self):
        assert enumerate_ancestors("/root/f1/f2/f3/") == [
            "/root/f1/",
            "/root/f1/f2/",
            "/root/f1/f2/f3/",
        ]

    def test_note_path(self):
        assert enumerate_ancestors("/root/a/b/n") == ["/root/a/", "/root/a/b/", "/root/a/b/n"]

    def test_root(self):
        assert enumerate_ancestors("/root/") == []

    def test_note_in_root(self):
        assert enumerate_ancestors("/root/n") == ["/root/n"]
