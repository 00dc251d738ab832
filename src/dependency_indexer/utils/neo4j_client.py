"""Neo4j client utilities and health checks."""

import time
from typing import Any, Callable, Optional

import structlog
from neo4j import GraphDatabase, Driver, Session, ManagedTransaction
from neo4j.exceptions import ServiceUnavailable, SessionExpired

from dependency_indexer.configuration.neo4j_config import Neo4jSettings

logger = structlog.get_logger(__name__)


class Neo4jClientFactory:
    """Create Neo4j driver from settings."""

    @staticmethod
    def create_driver(settings: Neo4jSettings) -> Driver:
        """Create a Neo4j driver from settings."""
        driver = GraphDatabase.driver(
            settings.NEO4J_URI,
            auth=(settings.NEO4J_USERNAME, settings.NEO4J_PASSWORD),
            max_connection_lifetime=settings.NEO4J_CONNECTION_TIMEOUT,
            max_connection_pool_size=settings.NEO4J_MAX_CONNECTION_POOL_SIZE,
            max_transaction_retry_time=settings.NEO4J_MAX_TRANSACTION_RETRY_TIME,
        )

        logger.info("Neo4j driver created", uri=settings.NEO4J_URI)
        return driver


class Neo4jClient:
    """Client for interacting with a Neo4j database.

    The host owns the lifecycle: call `connect()` (or enter the context
    manager) before running queries and `close()` when done.
    """

    def __init__(self, settings: Neo4jSettings, driver: Optional[Driver] = None):
        self.settings = settings
        self._driver = driver

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def connect(self) -> "Neo4jClient":
        """Create the driver if it does not exist yet."""
        if self._driver is None:
            self._driver = Neo4jClientFactory.create_driver(self.settings)
            logger.info("Neo4j client connected", database=self.settings.NEO4J_DATABASE)
        return self

    @property
    def is_connected(self) -> bool:
        return self._driver is not None

    @property
    def driver(self) -> Driver:
        """Get the Neo4j driver."""
        if self._driver is None:
            raise RuntimeError("Neo4j client is not connected; call connect() first")
        return self._driver

    def close(self):
        """Close the Neo4j driver connections."""
        if self._driver is not None:
            self._driver.close()
            self._driver = None
            logger.info("Neo4j driver closed")

    def get_session(self, database: str = None) -> Session:
        """Get a Neo4j session."""
        return self.driver.session(database=database or self.settings.NEO4J_DATABASE)

    def verify_connectivity(self) -> None:
        self.driver.verify_connectivity()

    def execute_read(self, query: str, parameters: Optional[dict] = None) -> list[dict]:
        """Run a read query in a managed transaction and return rows as dicts."""

        def work(tx: ManagedTransaction) -> list[dict]:
            return tx.run(query, parameters or {}).data()

        return self._run_with_retry(lambda session: session.execute_read(work), query)

    def execute_write(self, query: str, parameters: Optional[dict] = None) -> list[dict]:
        """Run a write query in a managed transaction and return rows as dicts."""

        def work(tx: ManagedTransaction) -> list[dict]:
            return tx.run(query, parameters or {}).data()

        return self._run_with_retry(lambda session: session.execute_write(work), query)

    def execute_write_transaction(self, work: Callable[[ManagedTransaction], Any]) -> Any:
        """Run `work(tx)` inside a single managed write transaction.

        Everything `work` runs commits together or not at all.
        """
        return self._run_with_retry(lambda session: session.execute_write(work), "<transaction>")

    def _run_with_retry(self, fn: Callable[[Session], Any], query: str) -> Any:
        """Execute `fn(session)` retrying on connectivity errors with exponential backoff."""
        max_attempts = self.settings.RETRY_MAX_ATTEMPTS
        retry_count = 0

        while True:
            try:
                with self.get_session() as session:
                    return fn(session)
            except (ServiceUnavailable, SessionExpired) as e:
                retry_count += 1
                if retry_count >= max_attempts:
                    logger.error(
                        "Neo4j query failed after max retries",
                        error=str(e),
                        query=query,
                    )
                    raise
                logger.warning(
                    "Neo4j query failed, retrying",
                    error=str(e),
                    retry_count=retry_count,
                    max_retries=max_attempts,
                )
                # Exponential backoff
                time.sleep(self.settings.RETRY_BACKOFF_BASE_SEC * (2 ** (retry_count - 1)))
            except Exception as e:
                logger.error(
                    "Neo4j query failed with unexpected error",
                    error=str(e),
                    query=query,
                )
                raise


class Neo4jHealthChecker:
    """A class to check the health of the Neo4j database."""

    @staticmethod
    def check_health(client: Neo4jClient) -> bool:
        """
        Check Neo4j connection health.

        Args:
            client: Neo4j client instance

        Returns:
            bool: True if Neo4j is healthy, False otherwise
        """
        try:
            with client.get_session() as session:
                result = session.run("RETURN 1 as n")
                record = result.single()
                if record is None or record["n"] != 1:
                    raise RuntimeError("Unexpected health check result")

            logger.info("Neo4j health check passed")
            return True
        except Exception as e:
            logger.error("Neo4j health check failed", error=str(e))
            return False
