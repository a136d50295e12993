"""Configuration module for the NoteTree server."""

import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from notetree import __version__
from notetree.exceptions import ConfigurationError

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config: survives reinstalls, lives alongside the database
_USER_ENV = Path.home() / ".notetree" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

ROOT_PATH = "/root/"
PATH_SEPARATOR = "/"

_DEFAULT_BANNED_SYMBOLS = [":", "/", "$", "\\", "?", "<", ">"]


def _symbols_from_env(var_name: str) -> List[str]:
    """Read a banned-symbol set from the environment.

    The variable holds the symbols concatenated, e.g. ``:/$\\?<>``.
    """
    raw = os.getenv(var_name)
    if not raw:
        return list(_DEFAULT_BANNED_SYMBOLS)
    return list(dict.fromkeys(raw))


class NoteTreeConfig(BaseModel):
    """Configuration for the NoteTree server."""

    # Base directory for the project
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTETREE_BASE_DIR", "."))
    )
    # Database configuration
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("NOTETREE_DATABASE_PATH", "data/db/notetree.db")
        )
    )
    # When True, uses an in-memory SQLite database (contents are lost on exit).
    in_memory_db: bool = Field(
        default_factory=lambda: os.getenv("NOTETREE_IN_MEMORY_DB", "false").lower()
        in ("true", "1", "yes")
    )
    # Server configuration
    server_name: str = Field(default=os.getenv("NOTETREE_SERVER_NAME", "notetree-mcp"))
    server_version: str = Field(default=__version__)
    # Identity used for calls arriving through the MCP surface. Authentication
    # happens outside this process; the server only forwards who it acts for.
    server_user: str = Field(
        default_factory=lambda: os.getenv("NOTETREE_SERVER_USER", "local")
    )
    # Run the tree consistency check when the server starts
    validate_on_startup: bool = Field(
        default_factory=lambda: os.getenv(
            "NOTETREE_VALIDATE_ON_STARTUP", "true"
        ).lower()
        in ("true", "1", "yes")
    )
    # Logging
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTETREE_LOG_DIR"))
            if os.getenv("NOTETREE_LOG_DIR")
            else None
        )
    )
    # Operation metrics are saved here on exit and every 100 operations.
    # Unset keeps them in memory only.
    metrics_file: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTETREE_METRICS_FILE"))
            if os.getenv("NOTETREE_METRICS_FILE")
            else None
        )
    )

    # Content given to notes created without explicit content
    default_note_content: str = Field(
        default_factory=lambda: os.getenv(
            "NOTETREE_DEFAULT_NOTE_CONTENT", "# **New Note**"
        )
    )
    # Characters that may not appear in note and folder names. Kept as two
    # separate sets even though they currently match.
    banned_file_name_symbols: List[str] = Field(
        default_factory=lambda: _symbols_from_env("NOTETREE_BANNED_FILE_SYMBOLS")
    )
    banned_folder_name_symbols: List[str] = Field(
        default_factory=lambda: _symbols_from_env("NOTETREE_BANNED_FOLDER_SYMBOLS")
    )

    @model_validator(mode="after")
    def _validate_banned_symbols(self) -> "NoteTreeConfig":
        """The path separator must always be banned from names."""
        for field_name in ("banned_file_name_symbols", "banned_folder_name_symbols"):
            symbols = getattr(self, field_name)
            if PATH_SEPARATOR not in symbols:
                raise ValueError(
                    f"{field_name} must contain the path separator '{PATH_SEPARATOR}'"
                )
            if any(len(s) != 1 for s in symbols):
                raise ValueError(f"{field_name} must contain single characters")
        if self.banned_file_name_symbols != self.banned_folder_name_symbols:
            logger.debug(
                "File and folder banned-symbol sets differ: %s vs %s",
                self.banned_file_name_symbols,
                self.banned_folder_name_symbols,
            )
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_url(self) -> str:
        """Get the database URL for SQLite."""
        if self.in_memory_db:
            return "sqlite://"
        db_path = self.get_absolute_path(self.database_path)
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot create the database directory {db_path.parent}: {e}",
                config_key="database_path",
            ) from e
        return f"sqlite:///{db_path}"


# Create a global config instance
config = NoteTreeConfig()
