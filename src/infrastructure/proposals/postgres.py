import json
from contextlib import closing
from importlib.util import find_spec
from typing import Any, Optional

from src.core.proposals.repository import (
    ErrorCallback,
    RecordValue,
    Unsubscribe,
    ValueCallback,
)
from src.infrastructure.proposals.listeners import ListenerRegistry, initial_delivery


class PostgresRecordStore:
    def __init__(self, *, dsn: str) -> None:
        if not dsn:
            raise RuntimeError("PROPOSAL_POSTGRES_DSN_REQUIRED")
        if find_spec("psycopg") is None:
            raise RuntimeError("PROPOSAL_POSTGRES_DRIVER_MISSING")
        self._dsn = dsn
        self._listeners = ListenerRegistry()
        self._init_db()

    def read(self, *, path: str) -> Optional[RecordValue]:
        query = """
            SELECT value_json
            FROM realtime_records
            WHERE path = %s
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (path,)).fetchone()
        return json.loads(row["value_json"]) if row is not None else None

    def write(self, *, path: str, value: RecordValue) -> None:
        query = """
            INSERT INTO realtime_records (path, value_json)
            VALUES (%s, %s)
            ON CONFLICT (path) DO UPDATE SET
                value_json=excluded.value_json
            RETURNING value_json
        """
        self._upsert(query, path, _json_dump(value))

    def partial_update(self, *, path: str, fields: RecordValue) -> None:
        query = """
            INSERT INTO realtime_records (path, value_json)
            VALUES (%s, %s)
            ON CONFLICT (path) DO UPDATE SET
                value_json=(realtime_records.value_json::jsonb || excluded.value_json::jsonb)::text
            RETURNING value_json
        """
        self._upsert(query, path, _json_dump(fields))

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

    def _upsert(self, query: str, path: str, value_json: str) -> None:
        # RETURNING yields the row exactly as this statement left it.
        with closing(self._connect()) as connection:
            row = connection.execute(query, (path, value_json)).fetchone()
            connection.commit()
        self._listeners.notify(path=path, value=json.loads(row["value_json"]))

    def _connect(self):
        psycopg, dict_row = _import_psycopg()
        return psycopg.connect(self._dsn, row_factory=dict_row)

    def _init_db(self) -> None:
        with closing(self._connect()) as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS realtime_records (
                    path TEXT PRIMARY KEY,
                    value_json TEXT NOT NULL
                )
                """
            )
            connection.commit()


def _import_psycopg():
    import psycopg
    from psycopg.rows import dict_row

    return psycopg, dict_row


def _json_dump(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"))
