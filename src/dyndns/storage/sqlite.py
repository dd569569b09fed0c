"""
SQLite Record Store

Persistent record store on SQLite through SQLAlchemy Core. All record sets
live in a single table named ``rr``; the primary key is the storage key from
:mod:`dyndns.core.keys` and the value is a JSON array holding the canonical
text form of every record in the set.

Writers are serialized by an in-process lock and run inside one
``BEGIN IMMEDIATE`` transaction each, so the read-modify-write of ``append``
is atomic against other writers in this process and in other processes.
WAL mode lets readers proceed while a writer holds the lock.
"""

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Union

from sqlalchemy import Column, MetaData, Table, Text, create_engine, delete, event, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import InvalidKey, InvalidName, SerializationFailure, StorageFailure
from ..core.keys import encode_key
from ..core.records import ResourceRecord
from .base import RecordStore

RR_BUCKET = "rr"

metadata = MetaData()

rr_table = Table(
    RR_BUCKET,
    metadata,
    Column("key", Text, primary_key=True),
    Column("value", Text, nullable=False),  # JSON array of record texts
)


def create_db_engine(db_path: Path, timeout: float = 10.0) -> Engine:
    """Create a SQLite engine with WAL mode and explicit transaction control.

    Args:
        db_path: Database file path
        timeout: Seconds to wait for a lock held by another connection
    """
    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"timeout": timeout, "check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        # pysqlite must not emit its own BEGIN; see _begin below
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin(conn: Connection) -> None:
        mode = conn.get_execution_options().get("sqlite_begin", "DEFERRED")
        conn.exec_driver_sql(f"BEGIN {mode}")

    return engine


def encode_record_set(records: List[ResourceRecord]) -> str:
    """Serialize a record set to its stored form.

    Raises:
        SerializationFailure: If a record cannot be encoded
    """
    try:
        return json.dumps([record.to_text() for record in records])
    except (TypeError, ValueError) as e:
        raise SerializationFailure(f"encoding failed: {e}") from e


def decode_record_set(value: str) -> List[ResourceRecord]:
    """Deserialize a stored record set.

    Every element must re-parse into a record; a single bad element fails
    the whole set.

    Raises:
        SerializationFailure: If the value is not a JSON array of valid
            record texts
    """
    try:
        texts = json.loads(value)
    except ValueError as e:
        raise SerializationFailure(f"decoding failed: {e}") from e

    if not isinstance(texts, list) or not all(isinstance(t, str) for t in texts):
        raise SerializationFailure("decoding failed: expected a list of strings")

    records = []
    for text in texts:
        try:
            records.append(ResourceRecord.from_text(text))
        except ValueError as e:
            raise SerializationFailure(f"invalid RR: {e}") from e

    return records


class SQLiteRecordStore(RecordStore):
    """Record store backed by a SQLite database"""

    def __init__(self, engine: Engine):
        self._engine = engine
        self._write_lock = threading.Lock()
        self._closed = False
        self.logger = logging.getLogger(__name__)

    @property
    def closed(self) -> bool:
        return self._closed

    def append(self, record: ResourceRecord) -> None:
        key = self._key(record.name, record.rdtype)

        with self._write_lock:
            with self._transaction(key, "append", immediate=True) as conn:
                records = self._read(conn, key)
                records.append(record)
                self._write(conn, key, records)

        self.logger.debug(f"Appended record to {key}: {record}")

    def get(self, name: str, rdtype: int) -> List[ResourceRecord]:
        key = self._key(name, rdtype)

        with self._transaction(key, "view") as conn:
            return self._read(conn, key)

    def delete(self, name: str, rdtype: int) -> None:
        key = self._key(name, rdtype)

        with self._write_lock:
            with self._transaction(key, "delete", immediate=True) as conn:
                conn.execute(delete(rr_table).where(rr_table.c.key == key))

        self.logger.debug(f"Deleted record set {key}")

    def keys(self) -> Iterator[str]:
        with self._transaction("*", "scan") as conn:
            rows = conn.execute(select(rr_table.c.key).order_by(rr_table.c.key)).all()
        return iter([row.key for row in rows])

    def close(self) -> None:
        with self._write_lock:
            if self._closed:
                return
            self._engine.dispose()
            self._closed = True

    def _key(self, name: str, rdtype: int) -> str:
        try:
            return encode_key(name, rdtype)
        except InvalidName as e:
            raise InvalidKey(f"invalid key: {e}") from e

    @contextmanager
    def _transaction(
        self, key: str, operation: str, immediate: bool = False
    ) -> Iterator[Connection]:
        """Run one storage transaction, mapping driver errors to StorageFailure"""
        if self._closed:
            raise StorageFailure(f"key {key}: {operation} failed: store is closed")

        try:
            with self._engine.connect() as conn:
                if immediate:
                    conn = conn.execution_options(sqlite_begin="IMMEDIATE")
                with conn.begin():
                    yield conn
        except SQLAlchemyError as e:
            raise StorageFailure(f"key {key}: {operation} failed: {e}") from e

    def _read(self, conn: Connection, key: str) -> List[ResourceRecord]:
        value = conn.execute(
            select(rr_table.c.value).where(rr_table.c.key == key)
        ).scalar_one_or_none()

        if not value:
            return []

        try:
            return decode_record_set(value)
        except SerializationFailure as e:
            raise SerializationFailure(f"key {key}: {e}") from e

    def _write(self, conn: Connection, key: str, records: List[ResourceRecord]) -> None:
        value = encode_record_set(records)
        stmt = sqlite_insert(rr_table).values(key=key, value=value)
        conn.execute(
            stmt.on_conflict_do_update(
                index_elements=[rr_table.c.key], set_={"value": stmt.excluded.value}
            )
        )


def open_record_store(path: Union[str, Path], timeout: float = 10.0) -> SQLiteRecordStore:
    """Open (creating if needed) the record store at ``path``.

    Creates the parent directory and the ``rr`` table. Safe to call on an
    existing database.

    Raises:
        StorageFailure: If the database cannot be opened or initialized
    """
    db_path = Path(path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_db_engine(db_path, timeout)
    try:
        metadata.create_all(engine)
    except SQLAlchemyError as e:
        engine.dispose()
        raise StorageFailure(f"creating bucket failed: {e}") from e

    return SQLiteRecordStore(engine)
