"""Database package: engine factory, sessions and the declarative Base."""
from osc_portal.db.base import (
    Base,
    async_session_factory,
    build_engine,
    engine,
    get_db,
    session_scope,
)

__all__ = ["Base", "async_session_factory", "build_engine", "engine", "get_db", "session_scope"]
