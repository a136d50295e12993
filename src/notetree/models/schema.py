"""Data models for the NoteTree server."""

import datetime
from dataclasses import dataclass, field
from datetime import timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current time with UTC timezone info attached.
    """
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: Optional[datetime.datetime]) -> datetime.datetime:
    """Ensure a datetime is timezone-aware, treating naive datetimes as UTC.

    SQLite hands back naive datetimes, so values read from the store are
    assumed to be UTC.
    """
    if dt_value is None:
        return utc_now()
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


class PathKind(str, Enum):
    """What a path string denotes."""

    FILE = "file"  # Note path, never ends with the separator
    FOLDER = "folder"  # Folder path, always ends with the separator
    ANY = "any"  # Either, used as an expectation only


class Folder(BaseModel):
    """A folder record. The root folder has no record."""

    name: str = Field(..., description="Folder name, e.g. 'Folder1'")
    parent_path: str = Field(
        ..., description="Full path of the containing folder, e.g. '/root/parent/'"
    )

    model_config = {"validate_assignment": True, "extra": "forbid"}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate that the name is not empty."""
        if not v:
            raise ValueError("Folder name cannot be empty")
        return v

    @property
    def full_path(self) -> str:
        """Full folder path, always ending with the separator."""
        return f"{self.parent_path}{self.name}/"


class Note(BaseModel):
    """A note record."""

    name: str = Field(..., description="Note name")
    directory: str = Field(..., description="Full path of the containing folder")
    content: str = Field(default="", description="Note body")
    created_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was created (UTC)"
    )
    updated_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was last updated (UTC)"
    )

    model_config = {"validate_assignment": True, "extra": "forbid"}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate that the name is not empty."""
        if not v:
            raise ValueError("Note name cannot be empty")
        return v

    @property
    def full_path(self) -> str:
        """Full note path, never ending with the separator."""
        return f"{self.directory}{self.name}"


class ChildEntry(BaseModel):
    """A direct child of a folder, as listed to callers."""

    name: str
    kind: PathKind

    model_config = {"frozen": True}


class Descendants(BaseModel):
    """Full paths of everything inside a folder's subtree."""

    folders: List[str] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)

    def all_paths(self) -> List[str]:
        """Folders first, then notes."""
        return [*self.folders, *self.notes]


class TreeNode(BaseModel):
    """A node of the tree as walked from the root."""

    name: str
    kind: PathKind
    directory: str
    children: List["TreeNode"] = Field(default_factory=list)

    @property
    def full_path(self) -> str:
        if self.kind == PathKind.FOLDER:
            return f"{self.directory}{self.name}/"
        return f"{self.directory}{self.name}"


class Identity(BaseModel):
    """The caller an inbound request acts for.

    Authentication happens before the core is reached; the core only requires
    that an identity is present and uses ``session_id`` to tag change events.
    """

    username: str = Field(..., description="Authenticated account name")
    session_id: Optional[str] = Field(
        default=None, description="Client connection the request came from"
    )

    model_config = {"frozen": True}


class ChangeType(str, Enum):
    """Kinds of outbound change notifications."""

    DIRECTORY_CHANGED = "directoryChanged"
    FILE_CHANGED = "fileChanged"
    NOTE_RENAMED = "noteRenamed"
    FOLDER_RENAMED = "folderRenamed"


class ChangeEvent(BaseModel):
    """A change notification published after a successful mutation."""

    type: ChangeType
    path: Optional[str] = None
    kind: Optional[PathKind] = None
    old_path: Optional[str] = None
    new_path: Optional[str] = None
    name: Optional[str] = Field(
        default=None, description="Name of the changed or renamed record"
    )
    source: Optional[str] = Field(
        default=None, description="Session id of the caller that caused the change"
    )
    created_at: datetime.datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}


@dataclass
class TreeReport:
    """Result of a full tree consistency check.

    Attributes:
        stored_folders: Number of folder records in the store.
        stored_notes: Number of note records in the store.
        reachable_folders: Folders reachable by walking from the root.
        reachable_notes: Notes reachable by walking from the root.
        invalid_paths: Reachable paths with a missing segment.
        error: Message of a domain error that aborted the check, if any.
    """

    stored_folders: int = 0
    stored_notes: int = 0
    reachable_folders: int = 0
    reachable_notes: int = 0
    invalid_paths: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return (
            self.error is None
            and not self.invalid_paths
            and self.stored_folders == self.reachable_folders
            and self.stored_notes == self.reachable_notes
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "is_valid": self.is_valid,
            "stored_folders": self.stored_folders,
            "stored_notes": self.stored_notes,
            "reachable_folders": self.reachable_folders,
            "reachable_notes": self.reachable_notes,
            "invalid_paths": list(self.invalid_paths),
            "error": self.error,
        }
