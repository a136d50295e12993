"""Path grammar for the virtual folder tree.

Every folder and note is addressed by a path rooted at ``/root/``::

    root
    |
    +- Note 1              /root/Note 1
    +- Folder 1            /root/Folder 1/
       |
       +- Note 2           /root/Folder 1/Note 2
       +- Folder 2         /root/Folder 1/Folder 2/

Rules:
1. A path must start with ``/root/``.
2. Folder paths end with ``/``. ``/root/f1/f2`` names a note called ``f2``
   inside ``f1``, not a folder.
3. ``//`` is never allowed.

All functions here are pure; none of them touch the store.
"""

from typing import Iterable, List, Optional

from notetree.config import PATH_SEPARATOR, ROOT_PATH, config
from notetree.exceptions import (
    InvalidNameError,
    InvalidPathError,
    InvariantViolationError,
    WrongPathKindError,
)
from notetree.models.schema import PathKind


def _banned_symbols(kind: PathKind) -> Iterable[str]:
    if kind == PathKind.FOLDER:
        return config.banned_folder_name_symbols
    return config.banned_file_name_symbols


def _name_problem(name: str, kind: PathKind) -> Optional[str]:
    """Return why ``name`` is not a valid name of ``kind``, or None."""
    if not isinstance(name, str):
        return "Names must be strings."
    if len(name) == 0:
        label = "Folder name" if kind == PathKind.FOLDER else "Filename"
        return f"{label} is empty."
    banned = set(_banned_symbols(kind))
    found = sorted({c for c in name if c in banned})
    if found:
        label = "Folder name" if kind == PathKind.FOLDER else "Filename"
        return f"{label} contains banned symbols {''.join(found)!r}."
    return None


def check_path(path: str, expected: PathKind = PathKind.ANY) -> Optional[str]:
    """Check that ``path`` follows the grammar.

    Args:
        path: The path string to check.
        expected: When FILE or FOLDER, also require the matching suffix.

    Returns:
        None if the path is valid, otherwise the reason it is not.
    """
    if not isinstance(path, str):
        return "Paths must be a type of string."
    if path == "":
        return "Empty paths are not allowed."
    if not path.startswith(ROOT_PATH):
        return f"Paths must start with '{ROOT_PATH}'."
    if PATH_SEPARATOR * 2 in path:
        return f"Paths must not contain '{PATH_SEPARATOR * 2}'."

    is_folder = path.endswith(PATH_SEPARATOR)
    if expected == PathKind.FILE and is_folder:
        return f"Filepaths must not end with '{PATH_SEPARATOR}'."
    if expected == PathKind.FOLDER and not is_folder:
        return f"Folder paths (directory) must end with '{PATH_SEPARATOR}'."

    components = path[len(ROOT_PATH):].split(PATH_SEPARATOR)
    if is_folder:
        # The trailing separator leaves an empty last component
        components = components[:-1]
    for index, component in enumerate(components):
        is_leaf_note = not is_folder and index == len(components) - 1
        kind = PathKind.FILE if is_leaf_note else PathKind.FOLDER
        problem = _name_problem(component, kind)
        if problem:
            return f"Component '{component}': {problem}"
    return None


def ensure_path(path: str, expected: PathKind = PathKind.ANY) -> None:
    """Raise InvalidPathError unless ``path`` follows the grammar."""
    reason = check_path(path, expected)
    if reason is not None:
        raise InvalidPathError(path, reason)


def classify(path: str) -> PathKind:
    """Return FOLDER if ``path`` ends with the separator, FILE otherwise.

    Raises:
        InvalidPathError: If the path violates the grammar.
    """
    ensure_path(path)
    if path.endswith(PATH_SEPARATOR):
        return PathKind.FOLDER
    return PathKind.FILE


def is_root(path: str) -> bool:
    return path == ROOT_PATH


def validate_name(name: str, kind: PathKind) -> None:
    """Raise InvalidNameError if ``name`` is empty or has a banned symbol.

    Args:
        name: Candidate folder or note name.
        kind: FOLDER or FILE; each has its own banned-symbol set.
    """
    if kind == PathKind.ANY:
        raise ValueError("validate_name needs a concrete kind (FILE or FOLDER)")
    problem = _name_problem(name, kind)
    if problem:
        raise InvalidNameError(name, problem, object_kind=kind.value)


def _ensure_kind(path: str, kind: PathKind) -> None:
    if classify(path) != kind:
        raise WrongPathKindError(path, kind.value)


def name_of_note(path: str) -> str:
    """``"/root/f1/f2/Note1"`` -> ``"Note1"``."""
    _ensure_kind(path, PathKind.FILE)
    return path.rsplit(PATH_SEPARATOR, 1)[1]


def name_of_folder(path: str) -> str:
    """``"/root/f1/f2/"`` -> ``"f2"``; ``"/root/"`` -> ``"root"``."""
    _ensure_kind(path, PathKind.FOLDER)
    return path.split(PATH_SEPARATOR)[-2]


def parent_of_folder(path: str) -> str:
    """``"/root/f1/f2/"`` -> ``"/root/f1/"``.

    Raises:
        InvariantViolationError: For the root, which has no parent.
    """
    _ensure_kind(path, PathKind.FOLDER)
    if is_root(path):
        raise InvariantViolationError(
            "The root folder has no parent.", path=path
        )
    parts = path.split(PATH_SEPARATOR)
    return PATH_SEPARATOR.join(parts[:-2]) + PATH_SEPARATOR


def parent_of_note(path: str) -> str:
    """``"/root/f1/note"`` -> ``"/root/f1/"``; ``"/root/note"`` -> ``"/root/"``."""
    _ensure_kind(path, PathKind.FILE)
    return path.rsplit(PATH_SEPARATOR, 1)[0] + PATH_SEPARATOR


def parent_of(path: str) -> str:
    """Parent folder of either kind of path."""
    if classify(path) == PathKind.FOLDER:
        return parent_of_folder(path)
    return parent_of_note(path)


def join_folder(parent_path: str, name: str) -> str:
    """Full path of folder ``name`` inside ``parent_path``."""
    return f"{parent_path}{name}{PATH_SEPARATOR}"


def join_note(directory: str, name: str) -> str:
    """Full path of note ``name`` inside ``directory``."""
    return f"{directory}{name}"


def is_descendant_of(ancestor: str, candidate: str) -> bool:
    """Whether ``candidate`` lies strictly inside the folder ``ancestor``.

    Compared segment-wise: ``ancestor`` is a folder path ending with the
    separator, so a prefix match can only stop on a segment boundary.
    ``"/root/x/root/a/"`` is not inside ``"/root/a/"`` and a folder is not
    its own descendant.
    """
    ensure_path(ancestor, PathKind.FOLDER)
    ensure_path(candidate)
    return candidate != ancestor and candidate.startswith(ancestor)


def rebase(path: str, old_prefix: str, new_prefix: str) -> str:
    """Replace the leading folder ``old_prefix`` of ``path`` with ``new_prefix``.

    Raises:
        InvariantViolationError: If ``path`` is not inside ``old_prefix``.
    """
    if not path.startswith(old_prefix):
        raise InvariantViolationError(
            f"'{path}' is not inside '{old_prefix}'", path=path
        )
    return new_prefix + path[len(old_prefix):]


def enumerate_ancestors(path: str) -> List[str]:
    """Every folder below the root down to ``path``, then ``path`` itself.

    ``"/root/f1/f2/f3/"`` -> ``["/root/f1/", "/root/f1/f2/", "/root/f1/f2/f3/"]``
    ``"/root/f1/f2/note"`` -> ``["/root/f1/", "/root/f1/f2/", "/root/f1/f2/note"]``
    ``"/root/"`` -> ``[]``
    """
    ensure_path(path)
    parts = path[len(ROOT_PATH):].split(PATH_SEPARATOR)
    paths = []
    cursor = ROOT_PATH
    for index, part in enumerate(parts):
        if part == "":
            continue
        is_last = index == len(parts) - 1
        cursor += part if is_last else part + PATH_SEPARATOR
        paths.append(cursor)
    return paths
