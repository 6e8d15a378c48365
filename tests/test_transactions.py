"""
Transaction tests - commit, rollback, state machine, row locks, deadlines (TDD).
Challenge: No partial writes ever become visible.
"""

import pytest

from recordstore.core.errors import OperationTimeout, TransactionError
from recordstore.db.models import Name, Sample, User, Wallet
from recordstore.db.predicates import Eq
from recordstore.db.transaction import Transaction, TxState


@pytest.mark.asyncio
async def test_transaction_commits_on_success(store):
    async def work(tx: Transaction):
        await tx.insert(Sample(id="1", name="Lingga"))
        await tx.insert(Sample(id="2", name="Budi"))
        return "ok"

    assert await store.transaction(work) == "ok"
    assert await store.count(Sample) == 2


@pytest.mark.asyncio
async def test_transaction_rolls_back_when_fn_raises(store):
    async def work(tx: Transaction):
        await tx.insert(Sample(id="1", name="Lingga"))
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await store.transaction(work)
    assert await store.count(Sample) == 0


@pytest.mark.asyncio
async def test_transaction_rolls_back_when_fn_returns_error(store):
    async def work(tx: Transaction):
        await tx.insert(Sample(id="1", name="Lingga"))
        return ValueError("rejected")

    with pytest.raises(ValueError, match="rejected"):
        await store.transaction(work)
    assert await store.count(Sample) == 0


@pytest.mark.asyncio
async def test_transaction_accepts_plain_function(store):
    result = await store.transaction(lambda tx: tx.insert(Sample(id="1", name="Lingga")))
    assert result == 1
    assert await store.count(Sample) == 1


@pytest.mark.asyncio
async def test_reads_inside_transaction_see_own_writes(store):
    async def work(tx: Transaction):
        await tx.insert(Sample(id="1", name="Lingga"))
        return await tx.count(Sample)

    assert await store.transaction(work) == 1


@pytest.mark.asyncio
async def test_nested_transaction_call_runs_inline(store):
    async def inner(tx: Transaction):
        await tx.insert(Sample(id="2", name="Budi"))
        raise RuntimeError("inner failed")

    async def outer(tx: Transaction):
        await tx.insert(Sample(id="1", name="Lingga"))
        await tx.transaction(inner)

    with pytest.raises(RuntimeError):
        await store.transaction(outer)
    assert await store.count(Sample) == 0


@pytest.mark.asyncio
async def test_manual_transaction_commit(store):
    async with store.begin() as tx:
        await tx.insert(Sample(id="1", name="Lingga"))
        await tx.commit()
    assert tx.state is TxState.COMMITTED
    assert await store.count(Sample) == 1


@pytest.mark.asyncio
async def test_manual_transaction_without_commit_rolls_back(store):
    async with store.begin() as tx:
        await tx.insert(Sample(id="1", name="Lingga"))
    assert tx.state is TxState.ROLLED_BACK
    assert await store.count(Sample) == 0


@pytest.mark.asyncio
async def test_manual_transaction_rolls_back_on_error(store):
    with pytest.raises(KeyError):
        async with store.begin() as tx:
            await tx.insert(Sample(id="1", name="Lingga"))
            raise KeyError("oops")
    assert await store.count(Sample) == 0


@pytest.mark.asyncio
async def test_terminal_transaction_rejects_operations(store):
    tx = store.begin()
    assert tx.state is TxState.IDLE
    await tx.begin()
    await tx.commit()

    with pytest.raises(TransactionError):
        await tx.insert(Sample(id="1", name="Lingga"))
    with pytest.raises(TransactionError):
        await tx.commit()
    # Rolling back an ended transaction is a no-op
    await tx.rollback()
    assert tx.state is TxState.COMMITTED


@pytest.mark.asyncio
async def test_commit_after_rollback_raises(store):
    tx = await store.begin().begin()
    await tx.rollback()
    with pytest.raises(TransactionError):
        await tx.commit()


@pytest.mark.asyncio
async def test_begin_twice_raises(store):
    async with store.begin() as tx:
        with pytest.raises(TransactionError):
            await tx.begin()


@pytest.mark.asyncio
async def test_row_lock_needs_explicit_transaction(store, lingga):
    with pytest.raises(TransactionError):
        await store.find_one(Wallet, {"user_id": "lingga"}, for_update=True)


@pytest.mark.asyncio
async def test_row_lock_inside_transaction(store, lingga):
    async def pay(tx: Transaction):
        wallet = await tx.find_one(Wallet, {"user_id": "lingga"}, for_update=True)
        wallet.balance -= 250_000
        return await tx.save(wallet)

    assert await store.transaction(pay) == 1
    wallet = await store.find_one(Wallet, {"user_id": "lingga"})
    assert wallet.balance == 750_000


@pytest.mark.asyncio
async def test_operation_deadline_raises_timeout(store, samples):
    async with store.begin() as tx:
        with pytest.raises(OperationTimeout):
            await tx.find_all(Sample, timeout=0)
    # The pool hands out a working connection afterwards
    assert await store.count(Sample) == 4


@pytest.mark.asyncio
async def test_store_stays_usable_after_failed_transaction(store):
    async def work(tx: Transaction):
        await tx.insert(User(id="joko", name=Name(first_name="Joko")))
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await store.transaction(work)
    await store.insert(User(id="joko", name=Name(first_name="Joko")))
    assert (await store.find_one(User, Eq(id="joko"))).name.first_name == "Joko"
