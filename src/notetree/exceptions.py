"""Custom exceptions for the NoteTree server.

Provides a structured exception hierarchy with error codes and
machine-readable error information, so every failure of the path/tree
layer maps to one kind and a human-readable message.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Path grammar errors (1xxx)
    INVALID_PATH = 1001
    INVALID_NAME = 1002
    WRONG_PATH_KIND = 1003

    # Lookup errors (2xxx)
    FOLDER_NOT_FOUND = 2001
    NOTE_NOT_FOUND = 2002
    PARENT_NOT_FOUND = 2003

    # Collision errors (3xxx)
    FOLDER_ALREADY_EXISTS = 3001
    NOTE_ALREADY_EXISTS = 3002

    # Tree invariant errors (4xxx)
    INVARIANT_VIOLATION = 4001
    ROOT_PROTECTED = 4002
    CYCLE_DETECTED = 4003
    SELF_MOVE = 4004

    # Storage errors (5xxx)
    STORE_FAILURE = 5001

    # Caller errors (6xxx)
    IDENTITY_REQUIRED = 6001

    # Configuration errors (7xxx)
    CONFIG_INVALID = 7001


class NoteTreeError(Exception):
    """Base exception for all NoteTree errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    kind = "NoteTreeError"

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INVARIANT_VIOLATION,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "kind": self.kind,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class InvalidPathError(NoteTreeError):
    """Raised when a path string violates the path grammar."""

    kind = "InvalidPath"

    def __init__(self, path: Any, reason: str):
        super().__init__(
            f"'{path}' is not a valid path. Reason: {reason}",
            code=ErrorCode.INVALID_PATH,
            details={"path": str(path)[:200], "reason": reason},
        )
        self.path = path
        self.reason = reason


class InvalidNameError(NoteTreeError):
    """Raised when a folder or note name is empty or contains banned symbols."""

    kind = "InvalidName"

    def __init__(self, name: Any, reason: str, object_kind: str = "file"):
        super().__init__(
            f"'{name}' is not a valid name for {object_kind}s. Reason: {reason}",
            code=ErrorCode.INVALID_NAME,
            details={"name": str(name)[:100], "reason": reason},
        )
        self.name = name
        self.reason = reason


class WrongPathKindError(NoteTreeError):
    """Raised when a folder path is given where a note path is expected, or vice versa."""

    kind = "WrongPathKind"

    def __init__(self, path: str, expected_kind: str):
        super().__init__(
            f"'{path}' is not a {expected_kind} path. Please use a {expected_kind} path.",
            code=ErrorCode.WRONG_PATH_KIND,
            details={"path": path, "expected": expected_kind},
        )
        self.path = path
        self.expected_kind = expected_kind


class NotFoundError(NoteTreeError):
    """Raised when a folder, note or parent folder does not exist."""

    kind = "NotFound"

    def __init__(self, path: str, message: str, code: ErrorCode):
        super().__init__(message, code=code, details={"path": path})
        self.path = path


class FolderNotFoundError(NotFoundError):
    """Raised when a folder cannot be found."""

    def __init__(self, path: str, message: Optional[str] = None):
        super().__init__(
            path,
            message or f"The folder '{path}' is not found.",
            code=ErrorCode.FOLDER_NOT_FOUND,
        )


class NoteNotFoundError(NotFoundError):
    """Raised when a note cannot be found."""

    def __init__(self, path: str, message: Optional[str] = None):
        super().__init__(
            path,
            message or f"The note '{path}' is not found.",
            code=ErrorCode.NOTE_NOT_FOUND,
        )


class ParentNotFoundError(NotFoundError):
    """Raised when the folder that should contain a new record does not exist."""

    def __init__(self, path: str):
        super().__init__(
            path,
            f"One of the nodes in '{path}' is not found.",
            code=ErrorCode.PARENT_NOT_FOUND,
        )


class AlreadyExistsError(NoteTreeError):
    """Raised when a folder or note name collides with an existing record."""

    kind = "AlreadyExists"

    def __init__(
        self,
        path: str,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOTE_ALREADY_EXISTS,
    ):
        super().__init__(
            message or f"'{path}' already exists.",
            code=code,
            details={"path": path},
        )
        self.path = path


class InvariantViolationError(NoteTreeError):
    """Raised for operations that would break the tree shape.

    Covers cycles, root-protected operations and self-moves.
    """

    kind = "InvariantViolation"

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.INVARIANT_VIOLATION,
    ):
        details = {}
        if path:
            details["path"] = path
        super().__init__(message, code=code, details=details)
        self.path = path


class StoreFailureError(NoteTreeError):
    """Raised for storage/persistence errors.

    The underlying error is passed through untouched in ``original_error``.
    """

    kind = "StoreFailure"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=ErrorCode.STORE_FAILURE, details=details)
        self.operation = operation
        self.original_error = original_error


class AuthenticationError(NoteTreeError):
    """Raised when a call arrives without a caller identity."""

    kind = "Authentication"

    def __init__(self, message: str = "A caller identity is required"):
        super().__init__(message, code=ErrorCode.IDENTITY_REQUIRED)


class ConfigurationError(NoteTreeError):
    """Raised for configuration-related errors."""

    kind = "Configuration"

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=ErrorCode.CONFIG_INVALID, details=details)
        self.config_key = config_key
