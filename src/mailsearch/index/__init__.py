"""Local mail index.

This package contains the SQLite message store, the query language and the
search engine that produces thread, message and tag cursors.
"""

from .database import Database, Message, Query, Thread
from .repository import MessageIndexRepository

__all__ = ["Database", "Message", "MessageIndexRepository", "Query", "Thread"]
