"""
CreditTransaction model — the append-only audit trail of credit movements.

Every movement of credits writes one record per affected wallet:

  - A purchase (credits bought after an external payment) writes one
    PURCHASE record for the buyer
  - A manual deduction writes one SPEND record
  - An accepted connection writes TWO records: a SPEND for the learner and
    an EARN for the teacher, linked by a shared `transfer_id`

Key fields:
  - kind: purchase | spend | earn | refund
  - amount_cents: Always positive (direction is implied by the kind)
  - meta: JSON context — connection_id, skill_id, counterparty_id,
    counterparty_name and a human-readable reason where applicable

Records are never updated or deleted; they disappear only when the owning
user is deleted.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey, CheckConstraint, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class TransactionKind(str, enum.Enum):
    """
    What a credit movement was for.

    Inherits from str so the value serializes naturally to JSON and is
    stored as a plain string.
    """
    PURCHASE = "purchase"   # Credits bought, balance goes up
    SPEND = "spend"         # Credits paid out, balance goes down
    EARN = "earn"           # Credits received from a learner, balance goes up
    REFUND = "refund"       # Credits returned to a payer, balance goes up


class CreditTransaction(Base):
    __tablename__ = "credit_transactions"

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_credit_transactions_positive_amount"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    kind: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        index=True,
    )

    amount_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Links the two legs of a transfer (NULL for single-wallet movements)
    transfer_id: Mapped[uuid.UUID | None] = mapped_column(
        nullable=True,
        index=True,
    )

    meta: Mapped[dict | None] = mapped_column(
        JSON,
        nullable=True,
    )

    # Indexed for newest-first history queries
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
