import pytest
from unittest.mock import MagicMock, Mock, patch
from neo4j import Driver
from neo4j.exceptions import ServiceUnavailable

from dependency_indexer.configuration.neo4j_config import Neo4jSettings
from dependency_indexer.utils.neo4j_client import (
    Neo4jClient,
    Neo4jClientFactory,
    Neo4jHealthChecker,
)


@pytest.fixture
def settings():
    """Neo4j settings with a fast retry backoff."""
    return Neo4jSettings(RETRY_MAX_ATTEMPTS=3, RETRY_BACKOFF_BASE_SEC=0.01)


def _driver_with_session():
    driver = MagicMock(spec=Driver)
    session = MagicMock()
    driver.session.return_value.__enter__.return_value = session
    return driver, session


@patch('dependency_indexer.utils.neo4j_client.GraphDatabase.driver')
def test_create_driver(mock_driver, settings):
    """Test driver creation."""
    mock_driver_instance = Mock(spec=Driver)
    mock_driver.return_value = mock_driver_instance

    driver = Neo4jClientFactory.create_driver(settings)

    mock_driver.assert_called_once_with(
        settings.NEO4J_URI,
        auth=(settings.NEO4J_USERNAME, settings.NEO4J_PASSWORD),
        max_connection_lifetime=settings.NEO4J_CONNECTION_TIMEOUT,
        max_connection_pool_size=settings.NEO4J_MAX_CONNECTION_POOL_SIZE,
        max_transaction_retry_time=settings.NEO4J_MAX_TRANSACTION_RETRY_TIME
    )
    assert driver == mock_driver_instance


@patch('dependency_indexer.utils.neo4j_client.Neo4jClientFactory.create_driver')
def test_connect_and_close_lifecycle(mock_create_driver, settings):
    """The driver exists only between connect() and close()."""
    mock_driver = Mock(spec=Driver)
    mock_create_driver.return_value = mock_driver

    client = Neo4jClient(settings)
    assert not client.is_connected
    mock_create_driver.assert_not_called()

    with client:
        assert client.is_connected
        mock_create_driver.assert_called_once_with(settings)

    mock_driver.close.assert_called_once()
    assert not client.is_connected


def test_driver_access_requires_connection(settings):
    with pytest.raises(RuntimeError):
        Neo4jClient(settings).get_session()


def test_get_session_uses_configured_database(settings):
    driver, _ = _driver_with_session()
    client = Neo4jClient(settings, driver=driver)

    client.get_session()
    driver.session.assert_called_once_with(database="neo4j")

    client.get_session(database="test_db")
    driver.session.assert_called_with(database="test_db")


def test_execute_read_returns_rows(settings):
    driver, session = _driver_with_session()
    tx = Mock()
    tx.run.return_value.data.return_value = [{"count": 2}]
    session.execute_read.side_effect = lambda work: work(tx)

    rows = Neo4jClient(settings, driver=driver).execute_read("RETURN 2 AS count", {"x": 1})

    assert rows == [{"count": 2}]
    tx.run.assert_called_once_with("RETURN 2 AS count", {"x": 1})


def test_execute_write_transaction_passes_transaction(settings):
    driver, session = _driver_with_session()
    tx = Mock()
    session.execute_write.side_effect = lambda work: work(tx)

    out = Neo4jClient(settings, driver=driver).execute_write_transaction(lambda t: t is tx)

    assert out is True


@patch('dependency_indexer.utils.neo4j_client.time.sleep')
def test_retry_on_service_unavailable(mock_sleep, settings):
    driver, session = _driver_with_session()
    session.execute_write.side_effect = [ServiceUnavailable("gone"), [{"ok": 1}]]

    rows = Neo4jClient(settings, driver=driver).execute_write("CREATE (n)")

    assert rows == [{"ok": 1}]
    mock_sleep.assert_called_once_with(0.01)


@patch('dependency_indexer.utils.neo4j_client.time.sleep')
def test_retry_gives_up_after_max_attempts(mock_sleep, settings):
    driver, session = _driver_with_session()
    session.execute_read.side_effect = ServiceUnavailable("gone")

    with pytest.raises(ServiceUnavailable):
        Neo4jClient(settings, driver=driver).execute_read("RETURN 1")

    assert session.execute_read.call_count == 3
    assert [c.args[0] for c in mock_sleep.call_args_list] == [0.01, 0.02]


def test_unexpected_errors_are_not_retried(settings):
    driver, session = _driver_with_session()
    session.execute_read.side_effect = ValueError("bad query")

    with pytest.raises(ValueError):
        Neo4jClient(settings, driver=driver).execute_read("RETURN")
    assert session.execute_read.call_count == 1


def test_health_check(settings):
    driver, session = _driver_with_session()
    session.run.return_value.single.return_value = {"n": 1}
    assert Neo4jHealthChecker.check_health(Neo4jClient(settings, driver=driver)) is True

    session.run.side_effect = ServiceUnavailable("gone")
    assert Neo4jHealthChecker.check_health(Neo4jClient(settings, driver=driver)) is False
