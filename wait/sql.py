# ============================================================================
# SQL STRATEGY
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Strategy - Readiness from a database query
# PURPOSE: Wait until a database accepts connections and answers a query
# CREATED: 18 OCT 2026
# ============================================================================
"""
SQL Strategy

Two phases under one deadline:

1. Wait for the port to be published (mapped_port). A PortNotFoundError
   from the target means "not yet"; other failures are fatal.
2. On every tick, open a fresh connection and run the probe query.
   Every failure is retried until the deadline: databases commonly refuse
   connections, reject logins or restart once during initialization.

The connection factory defaults to psycopg's async connection, so any
PostgreSQL-compatible URL works out of the box. Other drivers plug in by
passing a connector returning an object with async execute() and close().

Example:
    strategy = for_sql(
        "5432/tcp",
        lambda host, port: f"postgresql://test:test@{host}:{port}/test",
    )
"""

from typing import Any, Awaitable, Callable, Optional

import psycopg

from core.config import get_defaults
from core.logging import get_logger
from wait.deadline import bounded, check_deadline, deadline_scope, pause
from wait.errors import DeadlineExceededError, PortNotFoundError, TargetError
from wait.port import split_port
from wait.strategy import PollingStrategy
from wait.target import StrategyTarget, check_target

logger = get_logger(__name__)

# url(host, mapped_port) -> connection URL
UrlBuilder = Callable[[str, str], str]
Connector = Callable[[str], Awaitable[Any]]


async def psycopg_connector(url: str) -> psycopg.AsyncConnection:
    """Open an autocommit psycopg connection."""
    return await psycopg.AsyncConnection.connect(url, autocommit=True)


class SQLStrategy(PollingStrategy):
    """
    Wait for a database to answer a query.

    Attributes:
        port: Internal database port ("5432/tcp")
        url: Builds the connection URL from host and mapped port
        connector: Opens a connection for a URL
        query: Probe query
    """

    def __init__(self, port: str, url: UrlBuilder, connector: Optional[Connector] = None):
        super().__init__()
        self.port = port
        self.url = url
        self.connector: Connector = connector or psycopg_connector
        self.query = get_defaults().wait.sql_query

    def with_query(self, query: str) -> "SQLStrategy":
        """Probe with `query` instead of the default."""
        self.query = query
        return self

    async def wait_until_ready(self, target: StrategyTarget) -> None:
        with deadline_scope(self.effective_timeout()):
            try:
                host = await bounded(target.host())
            except DeadlineExceededError:
                raise
            except Exception as e:
                raise TargetError(f"host: {e}") from e

            mapped_port = await self._mapped_port(target)
            url = self.url(host, mapped_port)

            last_error: Optional[BaseException] = None
            while True:
                check_deadline(last_error)

                try:
                    await bounded(self._probe(url), last_error)
                except DeadlineExceededError:
                    raise
                except Exception as e:
                    logger.debug(f"Database on {host}:{mapped_port} not ready: {e}")
                    last_error = e
                else:
                    logger.debug(f"Database on {host}:{mapped_port} answered")
                    return

                await pause(self.poll_interval, last_error)
                await check_target(target)

    async def _mapped_port(self, target: StrategyTarget) -> str:
        last_error: Optional[BaseException] = None

        while True:
            check_deadline(last_error)

            try:
                mapped = await bounded(target.mapped_port(self.port), last_error)
            except DeadlineExceededError:
                raise
            except PortNotFoundError as e:
                last_error = e
            except Exception as e:
                raise TargetError(f"mapped port {self.port}: {e}") from e
            else:
                number, _ = split_port(mapped)
                return str(number)

            await pause(self.poll_interval, last_error)
            await check_target(target)

    async def _probe(self, url: str) -> None:
        conn = await self.connector(url)
        try:
            await conn.execute(self.query)
        finally:
            await conn.close()


def for_sql(port: str, url: UrlBuilder, connector: Optional[Connector] = None) -> SQLStrategy:
    """Wait until the database behind `port` answers a query."""
    return SQLStrategy(port, url, connector)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "SQLStrategy",
    "UrlBuilder",
    "Connector",
    "psycopg_connector",
    "for_sql",
]
