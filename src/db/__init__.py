"""
Persistence: SQLAlchemy models, async sessions, gateways.
"""

from src.db.database import async_session_scope, create_engine_for, create_session_factory, init_db
from src.db.gateway import InMemoryPersistenceGateway, PersistenceGateway, SqlPersistenceGateway
from src.db.graph_store import SqlSkillGraphStore

__all__ = [
    "async_session_scope",
    "create_engine_for",
    "create_session_factory",
    "init_db",
    "InMemoryPersistenceGateway",
    "PersistenceGateway",
    "SqlPersistenceGateway",
    "SqlSkillGraphStore",
]
