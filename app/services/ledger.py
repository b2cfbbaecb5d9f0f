"""
Ledger — moves credits between wallets and records every movement.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - Transfers between two wallets (connection acceptance)
  - Credit purchases and manual spends on a single wallet
  - Balance enforcement (no negative balances, no double-spend)
  - Compensation when the store fails part-way through a transfer

Step-wise atomicity:
  A transfer is a short saga:

      1. debit payer (conditional: balance >= amount)  undo: adjust payer +amount
      2. credit payee                                  undo: adjust payee -amount
      3. append SPEND + EARN records

  Steps 2 and 3 each run inside their own SAVEPOINT (begin_nested()). A
  step that fails rolls back only its own savepoint, so a failed flush
  never takes the request's transaction down with it and the undo
  statements still have a live transaction to run in.

  If step 2 or 3 raises a store error, the completed steps are undone in
  reverse order and the transfer is reported as FAULT. If an undo itself
  fails, balances are unreconciled: that is logged at CRITICAL and
  reported as RECONCILIATION_REQUIRED so nobody mistakes it for an
  ordinary error.

Serialization:
  Two concurrent acceptances against the same learner must not both pass
  the balance check. Within the process, transfers hold an asyncio.Lock
  per wallet, acquired in sorted user-id order so A->B and B->A can never
  deadlock. Across processes, the conditional debit in step 1 rejects a
  stale read: if the balance moved underneath us, zero rows match and the
  transfer is reported as INSUFFICIENT_FUNDS.

Failures are values:
  transfer() and spend() return a result whose status the caller inspects.
  Only precondition violations (programming errors) raise.
"""

import asyncio
import enum
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.transaction import CreditTransaction, TransactionKind
from app.services import account_store, transaction_log

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Per-wallet locks
# ---------------------------------------------------------------------------

class AccountLocks:
    """
    Registry of in-process locks keyed by user id.

    hold() acquires the locks for all given ids in sorted order and
    releases them in reverse, whatever order the caller passed them in.

    An entry lives only while some hold() holds or waits for it: each
    lock is reference-counted and dropped when its last user leaves, so
    the registry stays as small as the number of wallets in flight.
    """

    def __init__(self):
        self._locks: dict[uuid.UUID, asyncio.Lock] = {}
        self._users: dict[uuid.UUID, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def _checkout(self, user_id: uuid.UUID) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        self._users[user_id] = self._users.get(user_id, 0) + 1
        return lock

    def _checkin(self, user_id: uuid.UUID) -> None:
        self._users[user_id] -= 1
        if self._users[user_id] == 0:
            del self._users[user_id]
            del self._locks[user_id]

    @asynccontextmanager
    async def hold(self, *user_ids: uuid.UUID):
        ordered = sorted(set(user_ids))
        locks = [self._checkout(user_id) for user_id in ordered]
        acquired: list[asyncio.Lock] = []
        try:
            for lock in locks:
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for user_id in ordered:
                self._checkin(user_id)


account_locks = AccountLocks()


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class TransferStatus(str, enum.Enum):
    OK = "ok"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    FAULT = "fault"                                       # compensated, nothing moved
    RECONCILIATION_REQUIRED = "reconciliation_required"   # compensation failed


@dataclass(frozen=True)
class TransferContext:
    """Why credits are moving; copied into both transaction records' meta."""
    reason: str
    connection_id: uuid.UUID | None = None
    skill_id: uuid.UUID | None = None
    payer_name: str | None = None
    payee_name: str | None = None

    def meta_for(self, counterparty_id: uuid.UUID, counterparty_name: str | None) -> dict:
        meta = {
            "reason": self.reason,
            "counterparty_id": str(counterparty_id),
            "counterparty_name": counterparty_name,
        }
        if self.connection_id is not None:
            meta["connection_id"] = str(self.connection_id)
        if self.skill_id is not None:
            meta["skill_id"] = str(self.skill_id)
        return meta


@dataclass
class TransferResult:
    status: TransferStatus
    transfer_id: uuid.UUID
    payer_id: uuid.UUID
    payee_id: uuid.UUID
    amount_cents: int
    payer_balance_cents: int
    payee_balance_cents: int
    debit_transaction: CreditTransaction | None = None
    credit_transaction: CreditTransaction | None = None

    @property
    def ok(self) -> bool:
        return self.status == TransferStatus.OK


@dataclass
class SpendResult:
    status: TransferStatus
    user_id: uuid.UUID
    amount_cents: int
    balance_cents: int
    transactions: list[CreditTransaction] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == TransferStatus.OK


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------

async def transfer(
    db: AsyncSession,
    payer_id: uuid.UUID,
    payee_id: uuid.UUID,
    amount_cents: int,
    context: TransferContext,
) -> TransferResult:
    """
    Move amount_cents from payer to payee and record a SPEND/EARN pair.

    Args:
        db: Database session.
        payer_id: Wallet to debit (the learner).
        payee_id: Wallet to credit (the teacher).
        amount_cents: Positive integer amount in cents.
        context: Reason and links stored in both records' meta.

    Returns:
        TransferResult. On OK both balances are the post-transfer values and
        both records are set; on any other status no records were written
        and balances are as they were before the call (unless the status is
        RECONCILIATION_REQUIRED).

    Raises:
        ValueError: If payer == payee or amount_cents <= 0.
    """
    if payer_id == payee_id:
        raise ValueError("Payer and payee must differ")
    if amount_cents <= 0:
        raise ValueError("Transfer amount must be positive")

    transfer_id = uuid.uuid4()

    async with account_locks.hold(payer_id, payee_id):
        payer_before = await account_store.get_balance(db, payer_id)
        payee_before = await account_store.get_balance(db, payee_id)

        def result(status: TransferStatus, payer_balance: int, payee_balance: int) -> TransferResult:
            return TransferResult(
                status=status,
                transfer_id=transfer_id,
                payer_id=payer_id,
                payee_id=payee_id,
                amount_cents=amount_cents,
                payer_balance_cents=payer_balance,
                payee_balance_cents=payee_balance,
            )

        if payer_before < amount_cents or not await account_store.debit_if_sufficient(
            db, payer_id, amount_cents
        ):
            logger.info(
                f"Transfer {transfer_id} declined: {payer_id} has {payer_before} cents, "
                f"needs {amount_cents}"
            )
            return result(TransferStatus.INSUFFICIENT_FUNDS, payer_before, payee_before)

        # Each completed step registers the statement that undoes it.
        compensations = [("restore payer", payer_id, amount_cents)]
        try:
            async with db.begin_nested():
                await account_store.credit(db, payee_id, amount_cents)
            compensations.append(("reverse payee credit", payee_id, -amount_cents))

            async with db.begin_nested():
                debit_txn, credit_txn = await transaction_log.append(
                    db,
                    transaction_log.entry(
                        payer_id,
                        TransactionKind.SPEND,
                        amount_cents,
                        transfer_id=transfer_id,
                        meta=context.meta_for(payee_id, context.payee_name),
                    ),
                    transaction_log.entry(
                        payee_id,
                        TransactionKind.EARN,
                        amount_cents,
                        transfer_id=transfer_id,
                        meta=context.meta_for(payer_id, context.payer_name),
                    ),
                )
        except SQLAlchemyError:
            logger.exception(f"Transfer {transfer_id} failed after debiting {payer_id}; compensating")
            status = await _compensate(db, transfer_id, compensations, payer_before, amount_cents)
            return result(status, payer_before, payee_before)

        payer_after = await account_store.get_balance(db, payer_id)
        payee_after = await account_store.get_balance(db, payee_id)

    logger.info(
        f"Transfer {transfer_id}: {amount_cents} cents {payer_id} -> {payee_id} "
        f"({context.reason})"
    )
    completed = result(TransferStatus.OK, payer_after, payee_after)
    completed.debit_transaction = debit_txn
    completed.credit_transaction = credit_txn
    return completed


async def _compensate(
    db: AsyncSession,
    transfer_id: uuid.UUID,
    compensations: list[tuple[str, uuid.UUID, int]],
    payer_before: int,
    amount_cents: int,
) -> TransferStatus:
    """Undo completed transfer steps in reverse order."""
    for step, user_id, delta_cents in reversed(compensations):
        try:
            await account_store.adjust(db, user_id, delta_cents)
        except SQLAlchemyError:
            logger.critical(
                f"reconciliation_required: transfer {transfer_id} could not {step} "
                f"(wallet {user_id}, delta {delta_cents} cents, amount {amount_cents} cents, "
                f"payer balance before transfer {payer_before} cents)",
                exc_info=True,
            )
            return TransferStatus.RECONCILIATION_REQUIRED

    logger.error(f"Transfer {transfer_id} compensated; no credits moved")
    return TransferStatus.FAULT


# ---------------------------------------------------------------------------
# Single-wallet movements
# ---------------------------------------------------------------------------

async def purchase(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount_cents: int,
    meta: dict | None = None,
) -> tuple[CreditTransaction, int]:
    """
    Grant purchased credits (called after an external payment succeeded).

    Returns:
        Tuple of (purchase transaction, new balance in cents).

    Raises:
        ValueError: If amount_cents <= 0.
    """
    if amount_cents <= 0:
        raise ValueError("Purchase amount must be positive")

    async with account_locks.hold(user_id):
        await account_store.credit(db, user_id, amount_cents)
        (txn,) = await transaction_log.append(
            db,
            transaction_log.entry(user_id, TransactionKind.PURCHASE, amount_cents, meta=meta),
        )
        balance = await account_store.get_balance(db, user_id)

    logger.info(f"Purchase: {amount_cents} cents credited to {user_id}")
    return txn, balance


async def spend(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount_cents: int,
    reason: str | None = None,
    meta: dict | None = None,
) -> SpendResult:
    """
    Deduct credits from a single wallet.

    Returns INSUFFICIENT_FUNDS (nothing changed, nothing recorded) when the
    balance does not cover the amount.

    Raises:
        ValueError: If amount_cents <= 0.
    """
    if amount_cents <= 0:
        raise ValueError("Spend amount must be positive")

    async with account_locks.hold(user_id):
        await account_store.get_or_create(db, user_id)

        if not await account_store.debit_if_sufficient(db, user_id, amount_cents):
            balance = await account_store.get_balance(db, user_id)
            logger.info(f"Spend declined: {user_id} has {balance} cents, needs {amount_cents}")
            return SpendResult(TransferStatus.INSUFFICIENT_FUNDS, user_id, amount_cents, balance)

        (txn,) = await transaction_log.append(
            db,
            transaction_log.entry(
                user_id,
                TransactionKind.SPEND,
                amount_cents,
                meta={**(meta or {}), "reason": reason},
            ),
        )
        balance = await account_store.get_balance(db, user_id)

    return SpendResult(TransferStatus.OK, user_id, amount_cents, balance, [txn])
