"""
Connection model — a learner's request to learn a skill from its teacher.

Lifecycle:
    pending ──> accepted   (teacher; moves credits learner -> teacher)
            ├─> rejected   (teacher)
            ├─> completed  (teacher)
            └─> (deleted)  (learner cancels while still pending)

teacher_id and price_cents are snapshots taken from the skill when the
request is created. They never change afterwards: the ledger always charges
the snapshot price, not whatever the skill costs today.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class ConnectionStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


class Connection(Base):
    __tablename__ = "connections"

    __table_args__ = (
        CheckConstraint("price_cents >= 0", name="ck_connections_non_negative_price"),
        CheckConstraint("learner_id != teacher_id", name="ck_connections_no_self_dealing"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    skill_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("skills.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    learner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Snapshot of the skill owner at request time
    teacher_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Snapshot of the skill price at request time, never updated
    price_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=ConnectionStatus.PENDING.value,
        index=True,
    )

    message: Mapped[str | None] = mapped_column(
        String(1000),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
