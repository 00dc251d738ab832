"""
Neo4j connection settings for the dependency graph store.
"""

from functools import lru_cache

from pydantic import Field, field_validator

from .base_config import BaseConfig


class Neo4jSettings(BaseConfig):
    """
    Connection, pool and retry settings for the Neo4j driver.
    """
    NEO4J_URI: str = Field(default="bolt://localhost:7687", description="Neo4j connection URI")
    NEO4J_USERNAME: str = Field(default="neo4j", description="Neo4j username")
    NEO4J_PASSWORD: str = Field(default="neo4jpassword", description="Neo4j password")
    NEO4J_DATABASE: str = Field(default="neo4j", description="Neo4j database name")
    NEO4J_CONNECTION_TIMEOUT: float = Field(default=30.0, description="Neo4j connection lifetime in seconds")
    NEO4J_MAX_CONNECTION_POOL_SIZE: int = Field(default=50, description="Neo4j maximum connection pool size")
    NEO4J_MAX_TRANSACTION_RETRY_TIME: float = Field(
        default=30.0, description="Neo4j managed transaction retry budget in seconds"
    )
    RETRY_MAX_ATTEMPTS: int = Field(default=3, description="Attempts for queries failing on connectivity errors")
    RETRY_BACKOFF_BASE_SEC: float = Field(default=1.0, description="Base delay of the exponential retry backoff")

    @field_validator("NEO4J_CONNECTION_TIMEOUT", "RETRY_BACKOFF_BASE_SEC", "NEO4J_MAX_TRANSACTION_RETRY_TIME")
    @classmethod
    def validate_timeout(cls, v):
        """Timeouts and delays must be positive."""
        if v <= 0:
            raise ValueError(f"Timeout values must be positive, got {v}")
        return v

    @field_validator("RETRY_MAX_ATTEMPTS", "NEO4J_MAX_CONNECTION_POOL_SIZE")
    @classmethod
    def validate_positive_int(cls, v):
        """Counts must be positive."""
        if v <= 0:
            raise ValueError(f"Integer values must be positive, got {v}")
        return v


@lru_cache()
def get_neo4j_settings() -> Neo4jSettings:
    """
    Return the cached Neo4jSettings instance.
    """
    return Neo4jSettings()
