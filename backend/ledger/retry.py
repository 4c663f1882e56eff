import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError

from core.errors import PersistenceFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Raised by drivers when the server is unreachable or drops the connection.
TRANSIENT_ERRORS = (OperationalError, InterfaceError, OSError)


@dataclass
class ConnectRetryPolicy:
    """
    Bounded exponential backoff for acquiring a database connection.

    Only the connect step is retried. Once a unit of work has started applying
    changes nothing is retried here; domain errors are never retried at all.
    """

    attempts: int = 5
    backoff_seconds: float = 0.5
    max_backoff_seconds: float = 5.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    @classmethod
    def from_settings(cls, settings) -> "ConnectRetryPolicy":
        return cls(
            attempts=max(1, settings.db_connect_attempts),
            backoff_seconds=settings.db_connect_backoff_seconds,
            max_backoff_seconds=settings.db_connect_backoff_max_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        return min(self.max_backoff_seconds, self.backoff_seconds * (2 ** (attempt - 1)))

    async def run(self, connect: Callable[[], Awaitable[T]]) -> T:
        for attempt in range(1, self.attempts + 1):
            try:
                return await connect()
            except TRANSIENT_ERRORS as e:
                if attempt >= self.attempts:
                    raise PersistenceFailure(
                        f"ledger store unavailable after {attempt} attempts",
                        attempts=attempt,
                    ) from e
                wait_s = self.delay_for(attempt)
                logger.warning(
                    "ledger store connect failed (%s); retrying in %ss (attempt %s/%s)",
                    e.__class__.__name__,
                    wait_s,
                    attempt,
                    self.attempts,
                )
                await self.sleep(wait_s)
        raise PersistenceFailure("ledger store unavailable")
