"""
PostgreSQL storage adapter for the document vault.

Shares the SQLAlchemy Core schema and queries with the SQLite adapter; only
engine setup differs. Write transactions run at SERIALIZABLE isolation (see
`SqliteAdapter._write`), and serialization failures on version inserts are
reported as `VersionConflict` just like unique-constraint violations.

Requires the `pg` extra (psycopg2).
"""
from typing import Any

from adapters.sqlite import SqliteAdapter, make_engine, metadata


class PgAdapter(SqliteAdapter):
    """
    PostgreSQL storage adapter.

    Connection pooling follows the usual production defaults; override any of
    them through `engine_kwargs`.
    """

    @classmethod
    def from_url(cls, db_url: str, **engine_kwargs: Any) -> "PgAdapter":
        if not db_url.startswith(("postgresql", "postgres")):
            raise ValueError(f"PgAdapter needs a postgresql:// URL, got {db_url.split(':', 1)[0]}://")
        if db_url.startswith("postgres://"):
            # Heroku-style scheme that SQLAlchemy no longer accepts
            db_url = "postgresql://" + db_url[len("postgres://"):]

        engine_kwargs.setdefault("pool_size", 10)
        engine_kwargs.setdefault("max_overflow", 20)
        engine_kwargs.setdefault("pool_recycle", 3600)
        eng = make_engine(db_url, **engine_kwargs)
        metadata.create_all(eng)
        return cls(engine=eng)
