"""
Async SQLAlchemy setup: engine, session factory, declarative Base, and the
per-request session dependency.

Transaction boundary:
  One request is one database transaction. get_db() commits when the
  handler returns and rolls back when it raises an unexpected exception.

  SkillLinkError is the exception to that rule: it is committed before it
  propagates. A domain error is an answer, not a crash, and the ledger
  may already have written a compensating balance restore on the way to
  raising it. Rolling that back would undo the repair.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from app.config import settings
from app.exceptions import SkillLinkError


engine = create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# Objects stay readable after commit; an expired attribute would need a
# lazy load, which async sessions can't do implicitly.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """Yield a session for one request; see the module docstring for commit rules."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except SkillLinkError:
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise
