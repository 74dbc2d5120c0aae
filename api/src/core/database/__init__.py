"""Cassandra storage for the forum repositories."""

from src.core.database.async_cassandra import (
    FORUM_SCHEMA,
    ForumCassandra,
    init_async_cassandra,
    shutdown_async_cassandra,
)


__all__ = [
    "FORUM_SCHEMA",
    "ForumCassandra",
    "init_async_cassandra",
    "shutdown_async_cassandra",
]
