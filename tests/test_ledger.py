"""
Tests for the ledger service (wallet-to-wallet transfers, purchases, spends).

These run against the service functions directly, not over HTTP, so the
store can be made to fail at a precise step. They verify:
  - A transfer conserves the total number of credits
  - A completed transfer writes exactly one SPEND and one EARN sharing a transfer id
  - Insufficient funds changes nothing and records nothing
  - A store failure after the debit is compensated (FAULT, payer restored),
    including a real constraint violation during the flush
  - A failed compensation is reported as RECONCILIATION_REQUIRED and logged CRITICAL
  - Concurrent transfers from one payer can't overdraw it
  - Lock acquisition order never deadlocks, and idle locks are dropped
  - Precondition violations raise ValueError
"""

import asyncio
import logging
import uuid
from unittest.mock import patch, AsyncMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.models.transaction import CreditTransaction, TransactionKind
from app.services import account_store, ledger, transaction_log
from app.services.ledger import AccountLocks, TransferContext, TransferStatus


CONTEXT = TransferContext(reason="Learning session payment")


async def _funded_pair(db_session, make_user, payer_cents: int):
    payer = await make_user("Pat Payer")
    payee = await make_user("Pia Payee")
    if payer_cents:
        await ledger.purchase(db_session, payer.id, payer_cents)
    return payer, payee


# ---------------------------------------------------------------------------
# Successful transfers
# ---------------------------------------------------------------------------

class TestTransfer:
    """Tests for ledger.transfer on the happy path."""

    async def test_transfer_moves_credits(self, db_session, make_user):
        """50.00 - 30.00 leaves the payer with 20.00 and the payee with 30.00."""
        payer, payee = await _funded_pair(db_session, make_user, 5000)

        result = await ledger.transfer(db_session, payer.id, payee.id, 3000, CONTEXT)

        assert result.ok
        assert result.status == TransferStatus.OK
        assert result.payer_balance_cents == 2000
        assert result.payee_balance_cents == 3000
        assert await account_store.get_balance(db_session, payer.id) == 2000
        assert await account_store.get_balance(db_session, payee.id) == 3000

    async def test_transfer_conserves_total(self, db_session, make_user):
        """The sum of both balances is the same before and after."""
        payer, payee = await _funded_pair(db_session, make_user, 12345)
        await ledger.purchase(db_session, payee.id, 678)

        await ledger.transfer(db_session, payer.id, payee.id, 4321, CONTEXT)

        total = (
            await account_store.get_balance(db_session, payer.id)
            + await account_store.get_balance(db_session, payee.id)
        )
        assert total == 12345 + 678

    async def test_transfer_writes_paired_records(self, db_session, make_user):
        """One SPEND for the payer and one EARN for the payee, same transfer id."""
        payer, payee = await _funded_pair(db_session, make_user, 5000)
        context = TransferContext(
            reason="Learning session payment",
            connection_id=uuid.uuid4(),
            skill_id=uuid.uuid4(),
            payer_name="Pat Payer",
            payee_name="Pia Payee",
        )

        result = await ledger.transfer(db_session, payer.id, payee.id, 3000, context)

        records = await transaction_log.list_for_transfer(db_session, result.transfer_id)
        assert len(records) == 2
        by_kind = {record.kind: record for record in records}
        assert set(by_kind) == {"spend", "earn"}

        spend, earn = by_kind["spend"], by_kind["earn"]
        assert spend.user_id == payer.id
        assert earn.user_id == payee.id
        assert spend.amount_cents == earn.amount_cents == 3000

        # Each side's meta names the other side
        assert spend.meta["counterparty_id"] == str(payee.id)
        assert spend.meta["counterparty_name"] == "Pia Payee"
        assert earn.meta["counterparty_id"] == str(payer.id)
        assert earn.meta["counterparty_name"] == "Pat Payer"
        assert spend.meta["connection_id"] == str(context.connection_id)
        assert earn.meta["skill_id"] == str(context.skill_id)
        assert spend.meta["reason"] == "Learning session payment"

        assert result.debit_transaction is spend
        assert result.credit_transaction is earn

    async def test_transfer_exact_balance(self, db_session, make_user):
        """A payer can spend down to exactly zero."""
        payer, payee = await _funded_pair(db_session, make_user, 3000)

        result = await ledger.transfer(db_session, payer.id, payee.id, 3000, CONTEXT)

        assert result.ok
        assert result.payer_balance_cents == 0


# ---------------------------------------------------------------------------
# Declined transfers
# ---------------------------------------------------------------------------

class TestInsufficientFunds:
    """A transfer the payer can't cover changes nothing."""

    async def test_insufficient_funds(self, db_session, make_user):
        """10.00 cannot pay 30.00."""
        payer, payee = await _funded_pair(db_session, make_user, 1000)

        result = await ledger.transfer(db_session, payer.id, payee.id, 3000, CONTEXT)

        assert not result.ok
        assert result.status == TransferStatus.INSUFFICIENT_FUNDS
        assert result.payer_balance_cents == 1000
        assert result.payee_balance_cents == 0
        assert result.debit_transaction is None
        assert result.credit_transaction is None
        assert await account_store.get_balance(db_session, payer.id) == 1000
        assert await account_store.get_balance(db_session, payee.id) == 0
        assert await transaction_log.list_for_transfer(db_session, result.transfer_id) == []

    async def test_payer_without_wallet(self, db_session, make_user):
        """A payer who never bought credits has an empty wallet, not an error."""
        payer, payee = await _funded_pair(db_session, make_user, 0)

        result = await ledger.transfer(db_session, payer.id, payee.id, 1, CONTEXT)

        assert result.status == TransferStatus.INSUFFICIENT_FUNDS
        assert result.payer_balance_cents == 0

    async def test_conditional_debit_rejects_stale_read(self, db_session, make_user):
        """If the guarded debit matches no row, the transfer is declined."""
        payer, payee = await _funded_pair(db_session, make_user, 5000)

        with patch(
            "app.services.account_store.debit_if_sufficient",
            AsyncMock(return_value=False),
        ):
            result = await ledger.transfer(db_session, payer.id, payee.id, 3000, CONTEXT)

        assert result.status == TransferStatus.INSUFFICIENT_FUNDS
        assert await account_store.get_balance(db_session, payee.id) == 0
        assert await transaction_log.list_for_transfer(db_session, result.transfer_id) == []

    async def test_debit_if_sufficient_never_goes_negative(self, db_session, make_user):
        """The guarded UPDATE leaves the wallet untouched when it can't cover the amount."""
        user = await make_user()
        await ledger.purchase(db_session, user.id, 500)

        assert await account_store.debit_if_sufficient(db_session, user.id, 501) is False
        assert await account_store.get_balance(db_session, user.id) == 500
        assert await account_store.debit_if_sufficient(db_session, user.id, 500) is True
        assert await account_store.get_balance(db_session, user.id) == 0


# ---------------------------------------------------------------------------
# Store failures
# ---------------------------------------------------------------------------

class TestCompensation:
    """Failures after the debit are undone, or loudly reported if they can't be."""

    async def test_credit_failure_restores_payer(self, db_session, make_user):
        """The payee credit fails: payer gets the debit back, nothing is recorded."""
        payer, payee = await _funded_pair(db_session, make_user, 5000)

        with patch(
            "app.services.account_store.credit",
            AsyncMock(side_effect=SQLAlchemyError("boom")),
        ):
            result = await ledger.transfer(db_session, payer.id, payee.id, 3000, CONTEXT)

        assert result.status == TransferStatus.FAULT
        assert not result.ok
        assert await account_store.get_balance(db_session, payer.id) == 5000
        assert await account_store.get_balance(db_session, payee.id) == 0
        assert await transaction_log.list_for_transfer(db_session, result.transfer_id) == []

    async def test_record_failure_reverses_both_legs(self, db_session, make_user):
        """Writing the records fails after both balance updates: both are undone."""
        payer, payee = await _funded_pair(db_session, make_user, 5000)

        with patch(
            "app.services.transaction_log.append",
            AsyncMock(side_effect=SQLAlchemyError("disk full")),
        ):
            result = await ledger.transfer(db_session, payer.id, payee.id, 3000, CONTEXT)

        assert result.status == TransferStatus.FAULT
        assert await account_store.get_balance(db_session, payer.id) == 5000
        assert await account_store.get_balance(db_session, payee.id) == 0

    async def test_flush_failure_is_compensated(self, db_session, make_user, caplog):
        """A real constraint violation while writing the records: FAULT, both legs undone."""
        payer, payee = await _funded_pair(db_session, make_user, 5000)
        append = transaction_log.append

        async def append_with_invalid_row(db, *entries):
            # kind is NOT NULL, so the INSERT fails inside the flush
            invalid = CreditTransaction(user_id=entries[0].user_id, kind=None, amount_cents=1)
            return await append(db, *entries, invalid)

        with caplog.at_level(logging.INFO, logger="app.services.ledger"), patch(
            "app.services.transaction_log.append", append_with_invalid_row
        ):
            result = await ledger.transfer(db_session, payer.id, payee.id, 3000, CONTEXT)

        assert result.status == TransferStatus.FAULT
        assert not [r for r in caplog.records if r.levelno == logging.CRITICAL]

        # The session survived the failed flush and can still commit
        await db_session.commit()
        assert await account_store.get_balance(db_session, payer.id) == 5000
        assert await account_store.get_balance(db_session, payee.id) == 0
        assert await transaction_log.list_for_transfer(db_session, result.transfer_id) == []

    async def test_transfer_after_flush_failure_succeeds(self, db_session, make_user):
        """A compensated fault leaves the session usable for the next transfer."""
        payer, payee = await _funded_pair(db_session, make_user, 5000)
        append = transaction_log.append

        async def append_with_invalid_row(db, *entries):
            invalid = CreditTransaction(user_id=entries[0].user_id, kind=None, amount_cents=1)
            return await append(db, *entries, invalid)

        with patch("app.services.transaction_log.append", append_with_invalid_row):
            failed = await ledger.transfer(db_session, payer.id, payee.id, 3000, CONTEXT)

        retried = await ledger.transfer(db_session, payer.id, payee.id, 3000, CONTEXT)

        assert failed.status == TransferStatus.FAULT
        assert retried.ok
        assert retried.payer_balance_cents == 2000
        assert retried.payee_balance_cents == 3000

    async def test_failed_compensation_requires_reconciliation(
        self, db_session, make_user, caplog
    ):
        """Credit fails and the restore fails too: reported, logged CRITICAL, payer still debited."""
        payer, payee = await _funded_pair(db_session, make_user, 5000)

        with caplog.at_level(logging.INFO, logger="app.services.ledger"), patch(
            "app.services.account_store.credit",
            AsyncMock(side_effect=SQLAlchemyError("boom")),
        ), patch(
            "app.services.account_store.adjust",
            AsyncMock(side_effect=SQLAlchemyError("still broken")),
        ):
            result = await ledger.transfer(db_session, payer.id, payee.id, 3000, CONTEXT)

        assert result.status == TransferStatus.RECONCILIATION_REQUIRED
        assert await account_store.get_balance(db_session, payer.id) == 2000

        critical = [r for r in caplog.records if r.levelno == logging.CRITICAL]
        assert len(critical) == 1
        assert "reconciliation_required" in critical[0].getMessage()
        assert str(result.transfer_id) in critical[0].getMessage()


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

class TestConcurrency:
    """Per-wallet locks serialize transfers that share a wallet."""

    async def test_concurrent_transfers_cannot_overdraw(self, db_session, make_user):
        """Two 30.00 transfers against a 50.00 balance: exactly one succeeds."""
        payer = await make_user("Pat Payer")
        first = await make_user("First Teacher")
        second = await make_user("Second Teacher")
        await ledger.purchase(db_session, payer.id, 5000)

        results = await asyncio.gather(
            ledger.transfer(db_session, payer.id, first.id, 3000, CONTEXT),
            ledger.transfer(db_session, payer.id, second.id, 3000, CONTEXT),
        )

        statuses = sorted(result.status.value for result in results)
        assert statuses == ["insufficient_funds", "ok"]
        assert await account_store.get_balance(db_session, payer.id) == 2000

    async def test_opposite_order_does_not_deadlock(self):
        """hold(a, b) and hold(b, a) acquire in the same order."""
        locks = AccountLocks()
        a, b = uuid.uuid4(), uuid.uuid4()
        entered = []

        async def worker(name, *ids):
            async with locks.hold(*ids):
                entered.append(name)
                await asyncio.sleep(0.01)

        await asyncio.wait_for(
            asyncio.gather(worker("ab", a, b), worker("ba", b, a)),
            timeout=2,
        )
        assert sorted(entered) == ["ab", "ba"]

    async def test_hold_releases_on_error(self):
        """A failure inside hold() releases every lock it took."""
        locks = AccountLocks()
        a, b = uuid.uuid4(), uuid.uuid4()

        with pytest.raises(RuntimeError):
            async with locks.hold(a, b):
                raise RuntimeError("inside")

        assert len(locks) == 0

    async def test_idle_locks_are_dropped(self):
        """The registry only holds locks that are held or waited on."""
        locks = AccountLocks()
        a, b = uuid.uuid4(), uuid.uuid4()

        async with locks.hold(a, b):
            assert len(locks) == 2

        assert len(locks) == 0

    async def test_waiter_shares_the_held_lock(self):
        """A second holder waits on the same lock and it is dropped once both are done."""
        locks = AccountLocks()
        a = uuid.uuid4()
        release = asyncio.Event()
        order = []

        async def first():
            async with locks.hold(a):
                order.append("first in")
                await release.wait()
                order.append("first out")

        async def second():
            async with locks.hold(a):
                order.append("second in")

        first_task = asyncio.create_task(first())
        await asyncio.sleep(0)
        second_task = asyncio.create_task(second())
        await asyncio.sleep(0)

        assert order == ["first in"]
        assert len(locks) == 1

        release.set()
        await asyncio.wait_for(asyncio.gather(first_task, second_task), timeout=2)

        assert order == ["first in", "first out", "second in"]
        assert len(locks) == 0


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------

class TestPreconditions:
    """Programming errors raise instead of returning a status."""

    async def test_self_transfer_raises(self, db_session, make_user):
        user = await make_user()
        with pytest.raises(ValueError):
            await ledger.transfer(db_session, user.id, user.id, 100, CONTEXT)

    @pytest.mark.parametrize("amount", [0, -100])
    async def test_non_positive_transfer_raises(self, db_session, make_user, amount):
        payer, payee = await _funded_pair(db_session, make_user, 5000)
        with pytest.raises(ValueError):
            await ledger.transfer(db_session, payer.id, payee.id, amount, CONTEXT)

    async def test_non_positive_purchase_raises(self, db_session, make_user):
        user = await make_user()
        with pytest.raises(ValueError):
            await ledger.purchase(db_session, user.id, 0)

    def test_entry_rejects_non_positive_amount(self):
        with pytest.raises(ValueError):
            transaction_log.entry(uuid.uuid4(), TransactionKind.SPEND, 0)


# ---------------------------------------------------------------------------
# Single-wallet movements
# ---------------------------------------------------------------------------

class TestPurchaseAndSpend:
    """purchase() and spend() on one wallet."""

    async def test_purchase_records_and_credits(self, db_session, make_user):
        user = await make_user()

        txn, balance = await ledger.purchase(db_session, user.id, 2500, meta={"order": "A-1"})

        assert balance == 2500
        assert txn.kind == "purchase"
        assert txn.amount_cents == 2500
        assert txn.transfer_id is None
        assert txn.meta == {"order": "A-1"}

    async def test_spend_within_balance(self, db_session, make_user):
        user = await make_user()
        await ledger.purchase(db_session, user.id, 2500)

        result = await ledger.spend(db_session, user.id, 1000, reason="Boost listing")

        assert result.ok
        assert result.balance_cents == 1500
        assert result.transactions[0].kind == "spend"
        assert result.transactions[0].meta["reason"] == "Boost listing"

    async def test_spend_over_balance_changes_nothing(self, db_session, make_user):
        user = await make_user()
        await ledger.purchase(db_session, user.id, 500)

        result = await ledger.spend(db_session, user.id, 1000)

        assert result.status == TransferStatus.INSUFFICIENT_FUNDS
        assert result.balance_cents == 500
        assert result.transactions == []
        history = await transaction_log.list_for_user(db_session, user.id)
        assert [txn.kind for txn in history] == ["purchase"]
