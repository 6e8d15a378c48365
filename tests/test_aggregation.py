"""
Aggregation and raw SQL tests.
Challenge: Computed values come back keyed by their aliases.
"""

import pytest
import pytest_asyncio

from recordstore.core.errors import NotFound, SchemaError
from recordstore.db.models import Name, Sample, User, Wallet
from recordstore.db.predicates import Raw


@pytest_asyncio.fixture
async def wallets(store):
    users = [User(id=f"u{i}", name=Name(first_name=f"User {i}")) for i in range(1, 4)]
    await store.insert(users)
    rows = [
        Wallet(id="w1", user_id="u1", balance=0),
        Wallet(id="w2", user_id="u2", balance=1_000_000),
        Wallet(id="w3", user_id="u3", balance=3_000_000),
        Wallet(id="w4", user_id="u3", balance=2_000_000),
    ]
    await store.insert(rows)
    return rows


@pytest.mark.asyncio
async def test_aggregate_one_totals(store, wallets):
    row = await store.aggregate_one(Wallet, ["sum(balance) as total", "count(*) as n"])
    assert row == {"total": 6_000_000, "n": 4}


@pytest.mark.asyncio
async def test_aggregate_with_condition(store, wallets):
    row = await store.aggregate_one(Wallet, "max(balance) as richest", where=Raw("balance < ?", 3_000_000))
    assert row["richest"] == 2_000_000


@pytest.mark.asyncio
async def test_aggregate_group_by_and_having(store, wallets):
    rows = await store.aggregate(
        Wallet,
        ["user_id as user_id", "sum(balance) as total"],
        group_by="user_id",
        having=Raw("sum(balance) > ?", 500_000),
        order_by="user_id",
    )
    assert rows == [{"user_id": "u2", "total": 1_000_000}, {"user_id": "u3", "total": 5_000_000}]


@pytest.mark.asyncio
async def test_aggregate_one_without_rows_raises(store, wallets):
    with pytest.raises(NotFound):
        await store.aggregate_one(Wallet, "user_id as user_id", group_by="user_id", having=Raw("sum(balance) > ?", 10**12))


@pytest.mark.asyncio
async def test_exec_and_query(store):
    assert await store.exec("INSERT INTO sample (id, name) VALUES (?, ?)", "1", "Lingga") == 1
    assert await store.exec("INSERT INTO sample (id, name) VALUES (?, ?), (?, ?)", "2", "Budi", "3", "Joko") == 2

    rows = await store.query("SELECT id, name FROM sample WHERE id IN ? ORDER BY id", ["1", "3"])
    assert rows == [{"id": "1", "name": "Lingga"}, {"id": "3", "name": "Joko"}]


@pytest.mark.asyncio
async def test_query_into_registered_entity(store, samples):
    rows = await store.query("SELECT * FROM sample WHERE name = ?", "Budi", into=Sample)
    assert rows == [Sample(id="2", name="Budi")]


@pytest.mark.asyncio
async def test_query_one(store, samples):
    row = await store.query_one("SELECT name FROM sample WHERE id = ?", "4")
    assert row == {"name": "Rully"}
    with pytest.raises(NotFound):
        await store.query_one("SELECT name FROM sample WHERE id = ?", "404")


@pytest.mark.asyncio
async def test_raw_parameter_count_is_checked(store):
    with pytest.raises(SchemaError):
        await store.query("SELECT * FROM sample WHERE id = ? AND name = ?", "1")
    with pytest.raises(SchemaError):
        await store.exec("DELETE FROM sample WHERE id = ?", "1", "2")


@pytest.mark.asyncio
async def test_question_mark_inside_literal_is_not_a_parameter(store, samples):
    rows = await store.query("SELECT '?' AS mark, name FROM sample WHERE id = ?", "1")
    assert rows == [{"mark": "?", "name": "Lingga"}]
