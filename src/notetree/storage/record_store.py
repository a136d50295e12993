"""Flat record store for folders and notes.

Folders and notes are two independent tables keyed by
``(parent_path, name)`` and ``(directory, name)``. Nothing here knows about
the tree; the managers build the hierarchy on top of these exact-match
lookups.

Every manager operation runs inside one ``RecordStore.transaction()``, so a
multi-record mutation either commits as a whole or leaves the store untouched.
"""
import logging
import threading
from contextlib import contextmanager, nullcontext
from typing import Any, Dict, Generic, Iterator, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from notetree.exceptions import (
    AlreadyExistsError,
    ErrorCode,
    NoteTreeError,
    StoreFailureError,
)
from notetree.models.db_models import DBFolder, DBNote, get_session_factory, init_db
from notetree.models.schema import Folder, Note, ensure_timezone_aware
from notetree.storage.locks import SubtreeLockManager
from notetree.utils import escape_like_pattern

logger = logging.getLogger(__name__)

T = TypeVar("T", Folder, Note)

# Key filters per batched query; keeps each statement well under SQLite's
# bound-parameter limit.
FIND_ANY_CHUNK_SIZE = 200


class RecordCollection(Generic[T]):
    """Exact-match CRUD over one record kind, bound to an open session."""

    db_model: Any = None
    fields: Tuple[str, ...] = ()
    parent_field: str = ""
    already_exists_code: ErrorCode = ErrorCode.NOTE_ALREADY_EXISTS

    def __init__(self, session: Session):
        self.session = session

    # ---- conversion helpers ----

    def _to_model(self, row: Any) -> T:
        raise NotImplementedError

    def _full_path(self, values: Dict[str, Any]) -> str:
        raise NotImplementedError

    def _check_fields(self, names: Sequence[str]) -> None:
        unknown = [n for n in names if n not in self.fields]
        if unknown:
            raise ValueError(
                f"Unknown {self.db_model.__tablename__} field(s): {', '.join(unknown)}"
            )

    def _conditions(self, key_filter: Dict[str, Any]) -> List[Any]:
        self._check_fields(list(key_filter))
        return [
            getattr(self.db_model, key) == value for key, value in key_filter.items()
        ]

    def _rows(self, key_filter: Dict[str, Any]) -> List[Any]:
        query = select(self.db_model).where(*self._conditions(key_filter))
        return list(self.session.scalars(query.order_by(self.db_model.name)).all())

    # ---- reads ----

    def find_one(self, key_filter: Dict[str, Any]) -> Optional[T]:
        """Return the record matching every field in ``key_filter``, or None."""
        row = self.session.scalars(
            select(self.db_model).where(*self._conditions(key_filter)).limit(1)
        ).first()
        return self._to_model(row) if row is not None else None

    def find_many(self, key_filter: Optional[Dict[str, Any]] = None) -> List[T]:
        """Return all records matching ``key_filter``, ordered by name."""
        return [self._to_model(row) for row in self._rows(key_filter or {})]

    def find_any(self, filters: Sequence[Dict[str, Any]]) -> List[T]:
        """Return records matching at least one of ``filters``.

        One query per chunk instead of one query per record.
        """
        results: List[T] = []
        for start in range(0, len(filters), FIND_ANY_CHUNK_SIZE):
            chunk = filters[start:start + FIND_ANY_CHUNK_SIZE]
            clause = or_(*(and_(*self._conditions(f)) for f in chunk))
            rows = self.session.scalars(select(self.db_model).where(clause)).all()
            results.extend(self._to_model(row) for row in rows)
        return results

    def find_under(self, folder_path: str) -> List[T]:
        """Return every record whose parent field starts with ``folder_path``.

        For a folder path this is exactly the records inside its subtree.
        """
        column = getattr(self.db_model, self.parent_field)
        pattern = f"{escape_like_pattern(folder_path)}%"
        rows = self.session.scalars(
            select(self.db_model)
            .where(
                column.like(pattern, escape="\\"),
                # SQLite LIKE ignores ASCII case; names do not
                func.substr(column, 1, len(folder_path)) == folder_path,
            )
            .order_by(column, self.db_model.name)
        ).all()
        return [self._to_model(row) for row in rows]

    def count(self) -> int:
        return self.session.scalar(select(func.count()).select_from(self.db_model)) or 0

    def all(self) -> List[T]:
        return self.find_many()

    # ---- writes ----

    def insert(self, record: T) -> T:
        """Insert ``record``.

        Raises:
            AlreadyExistsError: If the identity pair is already taken.
        """
        values = record.model_dump()
        self._check_fields(list(values))
        self.session.add(self.db_model(**values))
        try:
            self.session.flush()
        except IntegrityError as e:
            raise AlreadyExistsError(
                self._full_path(values), code=self.already_exists_code
            ) from e
        return record

    def update_fields(self, key_filter: Dict[str, Any], patch: Dict[str, Any]) -> int:
        """Set ``patch`` on every record matching ``key_filter``.

        Returns:
            Number of records updated.

        Raises:
            AlreadyExistsError: If the update would duplicate an identity pair.
        """
        self._check_fields(list(patch))
        statement = (
            update(self.db_model)
            .where(*self._conditions(key_filter))
            .values(**patch)
        )
        try:
            result = self.session.execute(statement)
        except IntegrityError as e:
            merged = {**key_filter, **patch}
            raise AlreadyExistsError(
                self._full_path(merged), code=self.already_exists_code
            ) from e
        return result.rowcount

    def delete_one(self, key_filter: Dict[str, Any]) -> bool:
        """Delete the record matching ``key_filter``. Returns False if none matched."""
        row = self.session.scalars(
            select(self.db_model).where(*self._conditions(key_filter)).limit(1)
        ).first()
        if row is None:
            return False
        self.session.execute(
            delete(self.db_model)
            .where(self.db_model.id == row.id)
        )
        return True


class FolderRecords(RecordCollection[Folder]):
    """Folder records keyed by ``(parent_path, name)``."""

    db_model = DBFolder
    fields = ("name", "parent_path")
    parent_field = "parent_path"
    already_exists_code = ErrorCode.FOLDER_ALREADY_EXISTS

    def _to_model(self, row: DBFolder) -> Folder:
        return Folder(name=row.name, parent_path=row.parent_path)

    def _full_path(self, values: Dict[str, Any]) -> str:
        return f"{values.get('parent_path', '')}{values.get('name', '')}/"

    @staticmethod
    def key(parent_path: str, name: str) -> Dict[str, str]:
        return {"parent_path": parent_path, "name": name}


class NoteRecords(RecordCollection[Note]):
    """Note records keyed by ``(directory, name)``."""

    db_model = DBNote
    fields = ("name", "directory", "content", "created_at", "updated_at")
    parent_field = "directory"
    already_exists_code = ErrorCode.NOTE_ALREADY_EXISTS

    def _to_model(self, row: DBNote) -> Note:
        return Note(
            name=row.name,
            directory=row.directory,
            content=row.content,
            created_at=ensure_timezone_aware(row.created_at),
            updated_at=ensure_timezone_aware(row.updated_at),
        )

    def _full_path(self, values: Dict[str, Any]) -> str:
        return f"{values.get('directory', '')}{values.get('name', '')}"

    @staticmethod
    def key(directory: str, name: str) -> Dict[str, str]:
        return {"directory": directory, "name": name}


class StoreTransaction:
    """One unit of work: both collections bound to the same session."""

    def __init__(self, session: Session):
        self.session = session
        self.folders = FolderRecords(session)
        self.notes = NoteRecords(session)


class RecordStore:
    """Explicit handle on the flat record store.

    Pass one instance to every manager; it owns the engine, the session
    factory and the subtree locks shared by all managers using it.
    """

    def __init__(self, engine=None, lock_timeout: Optional[float] = 30.0):
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine. If None, one is created from config.
            lock_timeout: Seconds a mutation waits for an overlapping one.
        """
        self.engine = engine if engine is not None else init_db()
        self.session_factory = get_session_factory(self.engine)
        self.locks = SubtreeLockManager(timeout=lock_timeout)
        # StaticPool hands every session the same connection, so units of
        # work on disjoint subtrees must still take turns on it
        self.connection_lock = (
            threading.RLock() if isinstance(self.engine.pool, StaticPool) else None
        )
        logger.info(f"RecordStore initialized: {self.engine.url}")

    @contextmanager
    def transaction(self, operation: str = "transaction") -> Iterator[StoreTransaction]:
        """Run a block as a single transaction.

        Commits when the block finishes, rolls back on any exception. Domain
        errors propagate unchanged; database errors become StoreFailureError.
        """
        with self.connection_lock or nullcontext():
            session = self.session_factory()
            try:
                yield StoreTransaction(session)
                session.commit()
            except NoteTreeError:
                session.rollback()
                raise
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"{operation} failed, rolled back: {e}")
                raise StoreFailureError(
                    f"Store operation '{operation}' failed",
                    operation=operation,
                    original_error=e,
                ) from e
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def counts(self) -> Tuple[int, int]:
        """Return ``(folder_count, note_count)`` of stored records."""
        with self.transaction("count") as tx:
            return tx.folders.count(), tx.notes.count()

    def dispose(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
