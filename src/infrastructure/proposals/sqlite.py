import json
import sqlite3
from contextlib import closing
from pathlib import Path
from threading import Lock
from typing import Any, Optional

from src.core.proposals.repository import (
    ErrorCallback,
    RecordStore,
    RecordValue,
    Unsubscribe,
    ValueCallback,
)
from src.infrastructure.proposals.listeners import ListenerRegistry, initial_delivery


class SqliteRecordStore(RecordStore):
    def __init__(self, *, database_path: str) -> None:
        self._lock = Lock()
        self._database_path = database_path
        self._listeners = ListenerRegistry()
        self._init_db()

    def read(self, *, path: str) -> Optional[RecordValue]:
        query = """
            SELECT value_json
            FROM realtime_records
            WHERE path = ?
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (path,)).fetchone()
        return _json_load(row["value_json"]) if row is not None else None

    def write(self, *, path: str, value: RecordValue) -> None:
        query = """
            INSERT INTO realtime_records (path, value_json)
            VALUES (?, ?)
            ON CONFLICT(path) DO UPDATE SET
                value_json=excluded.value_json
        """
        with self._lock, closing(self._connect()) as connection:
            encoded = _json_dump(value)
            connection.execute(query, (path, encoded))
            connection.commit()
            snapshot = _json_load(encoded)
        self._listeners.notify(path=path, value=snapshot)

    def partial_update(self, *, path: str, fields: RecordValue) -> None:
        with self._lock, closing(self._connect()) as connection:
            row = connection.execute(
                "SELECT value_json FROM realtime_records WHERE path = ?", (path,)
            ).fetchone()
            record = _json_load(row["value_json"]) if row is not None else {}
            if not isinstance(record, dict):
                record = {}
            record.update(fields)
            encoded = _json_dump(record)
            connection.execute(
                """
                INSERT INTO realtime_records (path, value_json)
                VALUES (?, ?)
                ON CONFLICT(path) DO UPDATE SET
                    value_json=excluded.value_json
                """,
                (path, encoded),
            )
            connection.commit()
            snapshot = _json_load(encoded)
        self._listeners.notify(path=path, value=snapshot)

    def subscribe(
        self, *, path: str, on_value: ValueCallback, on_error: ErrorCallback
    ) -> Unsubscribe:
        return initial_delivery(
            self._listeners,
            path=path,
            read=lambda: self.read(path=path),
            on_value=on_value,
            on_error=on_error,
        )

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._database_path)
        connection.row_factory = sqlite3.Row
        return connection

    def _init_db(self) -> None:
        Path(self._database_path).parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as connection:
            connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS realtime_records (
                    path TEXT PRIMARY KEY,
                    value_json TEXT NOT NULL
                );
                """
            )
            connection.commit()


def _json_dump(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


def _json_load(value: str) -> Any:
    return json.loads(value)
