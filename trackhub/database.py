"""
Database engine, declarative base, and the record store dependency.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - engine: The async database engine (connection pool for production DBs)
  - Base: Declarative base class that all ORM models inherit from
  - get_store(): FastAPI dependency that provides the record store

Architecture note:
  The finance services never hold a session across calls. They talk to a
  RecordStore (see trackhub/store.py), where every select/insert/update/delete
  is its own short database transaction. That mirrors the hosted
  backend-as-a-service the app was designed against: single statements are
  atomic, sequences of statements are not. The ledger engine restores
  multi-step consistency itself with compensating writes.
"""

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import DeclarativeBase

from trackhub.config import settings
from trackhub.store import RecordStore, SqlRecordStore


# Create the async engine.
# echo=True in debug mode logs every SQL statement.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    The models exist for their table metadata: the record store addresses
    tables by name through Base.metadata.
    """
    pass


# Shared by all requests; the store holds no per-request state.
# Tables are resolved by name at call time, so model import order is irrelevant.
store = SqlRecordStore(engine, Base.metadata)


def get_store() -> RecordStore:
    """
    FastAPI dependency that provides the record store.

    Usage in a route:
        @router.get("/items")
        async def list_items(store: RecordStore = Depends(get_store)):
            ...

    Tests override this dependency with a store bound to an in-memory database.
    """
    return store
