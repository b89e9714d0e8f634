"""Session store adapters."""

from planner.services.http_store import HttpSessionStore
from planner.services.memory_store import InMemorySessionStore
from planner.services.sql_store import SqlSessionStore
from planner.services.store import SessionStore

__all__ = ["SessionStore", "InMemorySessionStore", "SqlSessionStore", "HttpSessionStore"]
