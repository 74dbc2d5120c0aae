"""Forum storage on Cassandra via cassandra-asyncio-driver.

The driver's ``Cluster`` hands out sessions whose ``aexecute()`` returns an
awaitable, so repositories never block the event loop. Connecting is still
synchronous and happens once, during application startup.

Each feature module owns its CQL (``*_TABLES_CQL`` in its ``models.py``);
``FORUM_SCHEMA`` lists them in creation order.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from src.config.settings import Settings, get_settings
from src.content.models import CONTENT_TABLES_CQL
from src.moderation.models import MODERATION_TABLES_CQL
from src.votes.models import VOTES_TABLES_CQL


logger = structlog.get_logger(__name__)


FORUM_SCHEMA: dict[str, list[str]] = {
    "content": CONTENT_TABLES_CQL,
    "votes": VOTES_TABLES_CQL,
    "moderation": MODERATION_TABLES_CQL,
}


class ForumCassandra:
    """Process-wide cluster and session holder."""

    _cluster: Cluster | None = None
    _session = None

    @classmethod
    def connect(cls, settings: Settings | None = None):
        """Connect to the cluster, reusing the session if already connected.

        Raises:
            ConnectionError: If no contact point answers
        """
        if cls._session is not None:
            return cls._session

        settings = settings or get_settings()

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cls._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            session = cls._cluster.connect()
        except Exception as e:
            logger.error(
                "cassandra_connection_failed",
                hosts=settings.cassandra_hosts,
                error=str(e),
            )
            cls._cluster.shutdown()
            cls._cluster = None
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        session.default_timeout = settings.cassandra_request_timeout
        cls._session = session
        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
            protocol_version=settings.cassandra_protocol_version,
        )
        return session

    @classmethod
    def disconnect(cls) -> None:
        """Shut down the session and the cluster."""
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
        logger.info("cassandra_disconnected")

    @classmethod
    def is_connected(cls) -> bool:
        return cls._session is not None and not cls._session.is_shutdown


def replication_for(settings: Settings) -> str:
    """Keyspace replication map; single-node outside production."""
    if settings.is_production:
        return "{'class': 'NetworkTopologyStrategy', 'datacenter1': 3}"
    return "{'class': 'SimpleStrategy', 'replication_factor': 1}"


async def create_keyspace(session, keyspace: str, replication: str) -> None:
    await session.aexecute(
        f"CREATE KEYSPACE IF NOT EXISTS {keyspace} "
        f"WITH replication = {replication} AND durable_writes = true"
    )
    logger.info("cassandra_keyspace_ready", keyspace=keyspace)


async def create_tables(session, keyspace: str, schema: dict[str, list[str]]) -> None:
    """Create every module's tables, in order."""
    for module, statements in schema.items():
        for template in statements:
            await session.aexecute(template.format(keyspace=keyspace))
        logger.info(
            "cassandra_tables_ready",
            keyspace=keyspace,
            module=module,
            tables=len(statements),
        )


async def init_async_cassandra(settings: Settings | None = None):
    """Connect, then create the forum keyspace and tables if missing.

    Returns:
        Session bound to the forum keyspace, with aexecute() support
    """
    settings = settings or get_settings()
    keyspace = settings.cassandra_keyspace

    session = ForumCassandra.connect(settings)
    await create_keyspace(session, keyspace, replication_for(settings))
    session.set_keyspace(keyspace)
    await create_tables(session, keyspace, FORUM_SCHEMA)

    return session


async def shutdown_async_cassandra() -> None:
    ForumCassandra.disconnect()
