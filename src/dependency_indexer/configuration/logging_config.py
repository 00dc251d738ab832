import logging
import sys

import structlog

SENSITIVE_FIELDS = ["password", "secret", "token", "auth"]


def filter_sensitive_data(logger, log_method, event_dict):
    """
    structlog processor masking credential-like fields (e.g. Neo4j auth).
    """
    for field in SENSITIVE_FIELDS:
        if field in event_dict:
            event_dict[field] = "[FILTERED]"
    return event_dict


def configure_logging(log_level=logging.INFO, stream=None, force_reconfigure=False):
    """Configure structlog JSON logging on top of stdlib logging.

    Host applications call this once at startup; library modules only ask
    `structlog.get_logger(__name__)` for loggers.
    """
    if stream is None:
        stream = sys.stdout

    if not force_reconfigure and getattr(structlog, "_dependency_indexer_configured", False):
        return

    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=log_level,
        force=True,
    )
    logging.root.setLevel(log_level)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        filter_sensitive_data,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]

    # Indexing workers run in threads; no logger caching so late configuration still applies.
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    structlog._dependency_indexer_configured = True
