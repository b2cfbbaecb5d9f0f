"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table when create_all() runs at startup
  2. Other modules can import from app.models directly
"""

from app.models.user import User  # noqa: F401
from app.models.wallet import Wallet  # noqa: F401
from app.models.transaction import CreditTransaction, TransactionKind  # noqa: F401
from app.models.skill import Skill  # noqa: F401
from app.models.connection import Connection, ConnectionStatus  # noqa: F401
