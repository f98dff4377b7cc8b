"""
Application configuration and constants for the Fleet Registry server.

This module centralizes environment-based configuration, identifier
allocation settings, pagination limits and other constants.

Configuration values can be overridden via environment variables.
"""

from os import environ


# ---------------------------------------------------------------------------
# Application metadata
# ---------------------------------------------------------------------------
API_TITLE = "Fleet Registry Server"
API_VERSION = "1.0.0"


# ---------------------------------------------------------------------------
# PostgreSQL configuration
# ---------------------------------------------------------------------------
PSQL_DB_DRIVER = environ.get("PSQL_DB_DRIVER", "postgresql")
PSQL_DB_USERNAME = environ.get("PSQL_DB_USERNAME", "postgres")
PSQL_DB_PORT = environ.get("PSQL_DB_PORT", "5432")
PSQL_DB_PASSWORD = environ.get("PSQL_DB_PASSWORD", "password")
PSQL_DB_HOST = environ.get("PSQL_DB_HOST", "localhost")
PSQL_DB_NAME = environ.get("PSQL_DB_NAME", "postgres")


# ---------------------------------------------------------------------------
# OpenObserve configuration
# ---------------------------------------------------------------------------
OPENOBSERVE_ENABLED = environ.get("OPENOBSERVE_ENABLED", "true").lower() == "true"
OPENOBSERVE_PROTOCOL = environ.get("OPENOBSERVE_PROTOCOL", "http")
OPENOBSERVE_HOST = environ.get("OPENOBSERVE_HOST", "localhost")
OPENOBSERVE_PORT = environ.get("OPENOBSERVE_PORT", "5080")
OPENOBSERVE_USERNAME = environ.get("OPENOBSERVE_USERNAME", "admin@fleet.local")
OPENOBSERVE_PASSWORD = environ.get("OPENOBSERVE_PASSWORD", "password")
OPENOBSERVE_ORG = environ.get("OPENOBSERVE_ORG", "fleet")
OPENOBSERVE_STREAM = environ.get("OPENOBSERVE_STREAM", "fleet-registry")
OPENOBSERVE_TIMEOUT = 5  # HTTP timeout for audit events (in seconds)


# ---------------------------------------------------------------------------
# Redis configuration
# ---------------------------------------------------------------------------
REDIS_HOST = environ.get("REDIS_HOST", "localhost")
REDIS_PORT = environ.get("REDIS_PORT", "6379")
REDIS_PASSWORD = environ.get("REDIS_PASSWORD", "password")


# ---------------------------------------------------------------------------
# Identifier allocation
# ---------------------------------------------------------------------------
SNOWFLAKE_NODE_ID = environ.get("SNOWFLAKE_NODE_ID")  # 0..1023, host derived if unset
SNOWFLAKE_EPOCH = 1491696000000  # 2017-04-09T00:00:00Z (in ms)
SNOWFLAKE_NODE_BITS = 10
SNOWFLAKE_SEQUENCE_BITS = 12


# ---------------------------------------------------------------------------
# Pagination limits
# ---------------------------------------------------------------------------
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


# ---------------------------------------------------------------------------
# Request and cache lifetimes
# ---------------------------------------------------------------------------
REQUEST_TIMEOUT = float(environ.get("REQUEST_TIMEOUT", "10"))  # (in seconds)
SSO_STATE_TTL = int(environ.get("SSO_STATE_TTL", "600"))  # (in seconds)


# ---------------------------------------------------------------------------
# Expiry windows
# ---------------------------------------------------------------------------
LICENSE_EXPIRY_WINDOW = 30  # Default "expiring soon" window (in days)
