from src.infrastructure.proposals.in_memory import InMemoryRecordStore
from src.infrastructure.proposals.postgres import PostgresRecordStore
from src.infrastructure.proposals.sqlite import SqliteRecordStore

__all__ = ["InMemoryRecordStore", "PostgresRecordStore", "SqliteRecordStore"]
