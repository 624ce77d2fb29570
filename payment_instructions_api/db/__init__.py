"""Database module for the request audit log."""

from .models import Base, RequestLog
from .session import close_db, init_db, session_scope

__all__ = ["Base", "RequestLog", "close_db", "init_db", "session_scope"]
