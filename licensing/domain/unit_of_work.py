"""
Unit of Work pattern for transaction management.

The Unit of Work ensures:
1. All repository calls of one operation share a single transaction
2. Atomic commit (all or nothing)
3. Post-commit hooks run AFTER a successful commit (session-change
   notifications are published only for changes that actually landed)
"""

from abc import ABC, abstractmethod
from typing import Callable, List, TYPE_CHECKING
from sqlalchemy.ext.asyncio import AsyncSession
import inspect
import logging

if TYPE_CHECKING:
    from licensing.core.interfaces import (
        IApplicationRepository,
        ILicenseRepository,
        IProfileRepository,
        IRoleRepository,
    )
    from licensing.services.session_context import SessionContext

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """
    Abstract Unit of Work.

    Provides:
    - Transaction boundaries (commit/rollback)
    - Repository access (profiles, roles, applications, licenses)
    - Post-commit hooks for side effects
    """

    profiles: 'IProfileRepository'
    roles: 'IRoleRepository'
    applications: 'IApplicationRepository'
    licenses: 'ILicenseRepository'

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """
        On success: commits and runs post-commit hooks.
        On exception: rolls back (no hooks run).
        """
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass

    @abstractmethod
    def add_post_commit_hook(self, hook: Callable):
        """
        Register a callable (sync or async) to run after a successful commit.
        """
        pass


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    SQLAlchemy implementation of Unit of Work.

    The session's lifetime belongs to the caller (``get_db_session`` or the
    CLI); the unit of work only commits or rolls back.
    """

    def __init__(self, session: AsyncSession, context: 'SessionContext'):
        self._session = session
        self.context = context
        self._post_commit_hooks: List[Callable] = []

        # Import here to avoid circular dependencies
        from licensing.repositories import (
            ApplicationRepository,
            LicenseRepository,
            ProfileRepository,
            RoleRepository,
        )

        self.profiles = ProfileRepository(session, context)
        self.roles = RoleRepository(session, context)
        self.applications = ApplicationRepository(session, context)
        self.licenses = LicenseRepository(session, context)

    async def commit(self):
        """
        Commit and run post-commit hooks in registration order.

        Hook failures are logged; the transaction is already committed.
        """
        try:
            await self._session.commit()
            logger.debug(f"✅ Transaction committed, running {len(self._post_commit_hooks)} post-commit hooks")

            for hook in self._post_commit_hooks:
                try:
                    if inspect.iscoroutinefunction(hook):
                        await hook()
                    else:
                        hook()
                except Exception as e:
                    logger.error(f"❌ Post-commit hook failed: {e}", exc_info=True)
        finally:
            self._post_commit_hooks.clear()

    async def rollback(self):
        try:
            await self._session.rollback()
            logger.debug("↩️  Transaction rolled back")
        finally:
            self._post_commit_hooks.clear()

    def add_post_commit_hook(self, hook: Callable):
        self._post_commit_hooks.append(hook)


def get_unit_of_work(session: AsyncSession, context: 'SessionContext') -> AbstractUnitOfWork:
    """
    Factory function for Unit of Work.

    Usage:
        async with get_unit_of_work(db, context) as uow:
            application = await uow.applications.add(application)
            # Commit happens on context exit
    """
    return SQLAlchemyUnitOfWork(session, context)
