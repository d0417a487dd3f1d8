"""
Base service class for services backed by the roster store.

Provides the async session scope and the retry wrapper that turns
persistent database failures into RosterUnavailable.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, TypeVar
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from velohub.utils.leaderboard_exceptions import RosterUnavailable

logger = logging.getLogger(__name__)

T = TypeVar('T')

class BaseService:
    """Base class for store-backed services."""

    def __init__(self, session_factory, max_retries: int = 3):
        """
        Args:
            session_factory: Async session factory from Database class
            max_retries: Attempts made by execute_with_retry before giving up
        """
        self.session_factory = session_factory
        self.max_retries = max_retries

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope: commit on success, rollback on error."""
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def execute_with_retry(self, func: Callable[[], Awaitable[T]], operation: str) -> T:
        """Run a store operation, retrying database errors with exponential backoff."""
        for attempt in range(self.max_retries):
            try:
                return await func()
            except SQLAlchemyError as e:
                if attempt == self.max_retries - 1:
                    logger.error(f"Roster store {operation} failed after {self.max_retries} attempts: {e}")
                    raise RosterUnavailable(operation, str(e)) from e
                logger.warning(f"Retry attempt {attempt + 1} for {operation}: {e}")
                await asyncio.sleep(0.1 * (2 ** attempt))
        raise RosterUnavailable(operation, "no attempts made")
