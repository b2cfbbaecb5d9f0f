"""
Connection service — the lifecycle of a learning request.

    pending ──> accepted   teacher only; charges the learner via the ledger
            ├─> rejected   teacher only
            ├─> completed  teacher only
            └─> (deleted)  learner only, cancel while pending

Rules enforced here:
  - A learner cannot request their own skill (SelfConnectionError)
  - teacher_id and price_cents are snapshotted from the skill at creation;
    acceptance always charges the snapshot price
  - Terminal statuses never change; asking for the current status again is
    a no-op. In particular a second "accepted" never charges twice.
  - A transition out of pending is claimed with a conditional UPDATE
    before any credits move. Two concurrent accepts race for that one
    row and the loser sees the winner's status.
  - If the ledger cannot move the credits, the claim is undone and the
    status stays pending

Ordering of checks:
  Not-found is checked before authorization, so a stranger learns that a
  connection id exists (403) but nothing about it.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    ConnectionNotFoundError,
    ForbiddenError,
    InsufficientCreditsError,
    InvalidTransitionError,
    LedgerFaultError,
    SelfConnectionError,
    SkillLinkError,
    SkillNotFoundError,
)
from app.models.connection import Connection, ConnectionStatus
from app.models.skill import Skill
from app.models.user import User
from app.services import ledger
from app.services.ledger import TransferContext, TransferResult, TransferStatus

logger = logging.getLogger(__name__)

TEACHER_TRANSITIONS = {
    ConnectionStatus.ACCEPTED,
    ConnectionStatus.REJECTED,
    ConnectionStatus.COMPLETED,
}


async def create_connection(
    db: AsyncSession,
    learner_id: uuid.UUID,
    skill_id: uuid.UUID,
    message: str | None = None,
) -> Connection:
    """
    Request to learn a skill.

    Raises:
        SkillNotFoundError: If the skill doesn't exist.
        SelfConnectionError: If the learner owns the skill.
    """
    result = await db.execute(select(Skill).where(Skill.id == skill_id))
    skill = result.scalar_one_or_none()

    if skill is None:
        raise SkillNotFoundError(skill_id)

    if skill.owner_id == learner_id:
        raise SelfConnectionError()

    connection = Connection(
        skill_id=skill.id,
        learner_id=learner_id,
        teacher_id=skill.owner_id,
        price_cents=skill.price_cents,
        status=ConnectionStatus.PENDING.value,
        message=message or None,
    )
    db.add(connection)
    await db.flush()
    return connection


async def _load(db: AsyncSession, connection_id: uuid.UUID) -> Connection:
    result = await db.execute(select(Connection).where(Connection.id == connection_id))
    connection = result.scalar_one_or_none()

    if connection is None:
        raise ConnectionNotFoundError(connection_id)

    return connection


async def list_connections(db: AsyncSession, user_id: uuid.UUID) -> list[Connection]:
    """Connections where the user is learner or teacher, newest first."""
    result = await db.execute(
        select(Connection)
        .where((Connection.learner_id == user_id) | (Connection.teacher_id == user_id))
        .order_by(Connection.created_at.desc())
    )
    return list(result.scalars().all())


async def get_connection(
    db: AsyncSession,
    user_id: uuid.UUID,
    connection_id: uuid.UUID,
) -> Connection:
    """
    Get a connection the user takes part in.

    Raises:
        ConnectionNotFoundError: If the connection doesn't exist.
        ForbiddenError: If the user is neither learner nor teacher.
    """
    connection = await _load(db, connection_id)

    if user_id not in (connection.learner_id, connection.teacher_id):
        raise ForbiddenError("Not authorized to view this connection")

    return connection


async def update_status(
    db: AsyncSession,
    actor_id: uuid.UUID,
    connection_id: uuid.UUID,
    new_status: ConnectionStatus,
) -> tuple[Connection, TransferResult | None]:
    """
    Move a connection to accepted, rejected or completed.

    Args:
        db: Database session.
        actor_id: The authenticated user (must be the teacher).
        connection_id: The connection to update.
        new_status: Target status.

    Returns:
        Tuple of (connection, transfer result). The transfer result is None
        unless this call moved credits.

    Raises:
        ConnectionNotFoundError: If the connection doesn't exist.
        ForbiddenError: If the actor is not the teacher.
        InvalidTransitionError: If the target is pending, or the connection
                                already sits in a different terminal status.
        InsufficientCreditsError: If the learner can't cover the price.
        LedgerFaultError: If the store failed during the transfer.
    """
    connection = await _load(db, connection_id)

    if connection.teacher_id != actor_id:
        raise ForbiddenError("Only the teacher can update connection status")

    current = ConnectionStatus(connection.status)

    if new_status == current:
        logger.info(f"Connection {connection.id} already {current.value}; nothing to do")
        return connection, None

    if new_status not in TEACHER_TRANSITIONS or current != ConnectionStatus.PENDING:
        raise InvalidTransitionError(current.value, new_status.value)

    if not await _claim(db, connection.id, ConnectionStatus.PENDING, new_status):
        # Another request moved the connection after we read it
        await db.refresh(connection)
        current = ConnectionStatus(connection.status)
        if new_status == current:
            logger.info(f"Connection {connection.id} already {current.value}; nothing to do")
            return connection, None
        raise InvalidTransitionError(current.value, new_status.value)

    transfer = None
    if new_status == ConnectionStatus.ACCEPTED and connection.price_cents > 0:
        try:
            transfer = await _charge_learner(db, connection)
        except SkillLinkError:
            await _claim(db, connection.id, new_status, ConnectionStatus.PENDING)
            raise

    await db.refresh(connection)

    logger.info(f"Connection {connection.id}: {current.value} -> {new_status.value}")
    return connection, transfer


async def _claim(
    db: AsyncSession,
    connection_id: uuid.UUID,
    expected: ConnectionStatus,
    target: ConnectionStatus,
) -> bool:
    """
    Move a connection from expected to target in one conditional UPDATE.

    Returns False when the row was no longer in the expected status, so of
    two concurrent requests for the same transition only one proceeds.
    """
    result = await db.execute(
        update(Connection)
        .where(Connection.id == connection_id)
        .where(Connection.status == expected.value)
        .values(status=target.value, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _charge_learner(db: AsyncSession, connection: Connection) -> TransferResult:
    """Run the acceptance transfer and turn a failed outcome into a domain error."""
    names = await db.execute(
        select(User.id, User.full_name).where(
            User.id.in_([connection.learner_id, connection.teacher_id])
        )
    )
    name_by_id = dict(names.all())

    result = await ledger.transfer(
        db,
        payer_id=connection.learner_id,
        payee_id=connection.teacher_id,
        amount_cents=connection.price_cents,
        context=TransferContext(
            reason="Learning session payment",
            connection_id=connection.id,
            skill_id=connection.skill_id,
            payer_name=name_by_id.get(connection.learner_id),
            payee_name=name_by_id.get(connection.teacher_id),
        ),
    )

    if result.status == TransferStatus.INSUFFICIENT_FUNDS:
        raise InsufficientCreditsError(
            user_id=connection.learner_id,
            requested_cents=connection.price_cents,
            available_cents=result.payer_balance_cents,
        )
    if result.status == TransferStatus.FAULT:
        raise LedgerFaultError(result.transfer_id)
    if result.status == TransferStatus.RECONCILIATION_REQUIRED:
        raise LedgerFaultError(result.transfer_id, reconciled=False)

    return result


async def cancel_connection(
    db: AsyncSession,
    actor_id: uuid.UUID,
    connection_id: uuid.UUID,
) -> None:
    """
    Withdraw a pending request. The row is deleted, not tagged.

    Raises:
        ConnectionNotFoundError: If the connection doesn't exist.
        ForbiddenError: If the actor is not the learner.
        InvalidTransitionError: If the connection is no longer pending.
    """
    connection = await _load(db, connection_id)

    if connection.learner_id != actor_id:
        raise ForbiddenError("Only the learner can cancel a connection")

    if connection.status != ConnectionStatus.PENDING.value:
        raise InvalidTransitionError(connection.status, "cancelled")

    await db.delete(connection)
    await db.flush()
    logger.info(f"Connection {connection_id} cancelled by learner")
