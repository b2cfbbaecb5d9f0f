"""
Wallet model — a user's credit balance (the Account of the ledger).

Each user has at most one wallet, keyed by user id. Wallets are created on
demand (get-or-create) the first time a balance is read or credits are
granted, and are only ever mutated by the ledger.

Balance management:
  `balance_cents` stores the balance in integer cents (30.00 credits = 3000).
  Integer arithmetic is exact, so balances never drift over many transfers.

  A CHECK constraint enforces that the balance can never go negative. The
  ledger already debits with a conditional UPDATE; the constraint is the
  last line of defence against bugs or races.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class Wallet(Base):
    __tablename__ = "wallets"

    __table_args__ = (
        CheckConstraint(
            "balance_cents >= 0",
            name="ck_wallets_non_negative_balance",
        ),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    balance_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    user: Mapped["User"] = relationship(
        back_populates="wallet",
    )
