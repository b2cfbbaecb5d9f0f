"""
Connections router — learning requests and their lifecycle.

Endpoints:
  POST   /connections       — Learner requests a skill (status pending)
  GET    /connections       — Connections where you are learner or teacher
  GET    /connections/{id}  — One connection (participants only)
  PUT    /connections/{id}  — Teacher accepts / rejects / completes
  DELETE /connections/{id}  — Learner cancels a pending request

Accepting moves the snapshot price from the learner's wallet to the
teacher's. If the learner can't pay, the request is answered with 400 and
the connection stays pending. Accepting an already-accepted connection
returns 200 and charges nothing.
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.models.connection import ConnectionStatus
from app.models.user import User
from app.schemas.connection import (
    CancelResponse,
    ConnectionCreateRequest,
    ConnectionResponse,
    ConnectionUpdateRequest,
    ConnectionUpdateResponse,
    TransferOutcome,
)
from app.schemas.credit import TransactionResponse
from app.services import connection_service

router = APIRouter()


@router.post(
    "",
    response_model=ConnectionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request to learn a skill",
)
async def create_connection(
    request: ConnectionCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a pending connection to a skill owned by someone else.

    The teacher and the price are fixed from the skill at this moment;
    later edits to the skill don't change them.
    """
    return await connection_service.create_connection(
        db,
        learner_id=user.id,
        skill_id=request.skill_id,
        message=request.message,
    )


@router.get("", response_model=list[ConnectionResponse], summary="List your connections")
async def list_connections(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await connection_service.list_connections(db, user.id)


@router.get("/{connection_id}", response_model=ConnectionResponse, summary="Get a connection")
async def get_connection(
    connection_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await connection_service.get_connection(db, user.id, connection_id)


@router.put(
    "/{connection_id}",
    response_model=ConnectionUpdateResponse,
    summary="Accept, reject or complete a connection",
)
async def update_connection(
    connection_id: uuid.UUID,
    request: ConnectionUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Change the status of a connection you teach.

    - **accepted**: charges the learner the connection price (400 if they can't pay)
    - **rejected** / **completed**: status change only, no credits move
    """
    connection, transfer = await connection_service.update_status(
        db,
        actor_id=user.id,
        connection_id=connection_id,
        new_status=ConnectionStatus(request.status),
    )

    outcome = None
    if transfer is not None:
        outcome = TransferOutcome(
            transfer_id=transfer.transfer_id,
            status=transfer.status.value,
            amount_cents=transfer.amount_cents,
            teacher_balance_cents=transfer.payee_balance_cents,
            earn_transaction=(
                TransactionResponse.model_validate(transfer.credit_transaction)
                if transfer.credit_transaction is not None
                else None
            ),
        )

    return ConnectionUpdateResponse(
        connection=ConnectionResponse.model_validate(connection),
        transfer=outcome,
    )


@router.delete("/{connection_id}", response_model=CancelResponse, summary="Cancel a request")
async def cancel_connection(
    connection_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Withdraw a pending request you made. The connection is removed."""
    await connection_service.cancel_connection(db, actor_id=user.id, connection_id=connection_id)
    return CancelResponse()
