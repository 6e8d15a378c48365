"""
BDD step definitions for the transactions feature (pytest-bdd).
Challenge: Express requirements in Gherkin; map to store calls.
"""

import asyncio

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from recordstore.config import Settings
from recordstore.db.loading import ALL
from recordstore.db.models import Address, Name, Todo, User, Wallet
from recordstore.db.predicates import Eq
from recordstore.db.session import create_store

# Load all scenarios from the feature file
scenarios("../features/transactions.feature")


@pytest.fixture
def loop():
    """Event loop driving the synchronous steps."""
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture
def store(loop, tmp_path):
    settings = Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'bdd.db'}", _env_file=None)
    store = create_store(settings)
    yield store
    loop.run_until_complete(store.close())


@given("an empty store")
def empty_store(loop, store):
    loop.run_until_complete(store.migrate())


@given(parsers.parse('a todo "{title}" for user "{user_id}"'))
def todo_for_user(loop, store, title, user_id):
    loop.run_until_complete(store.insert(Todo(user_id=user_id, title=title)))


@when(parsers.parse('I create users "{first}" and "{second}" in one transaction'))
def create_two_users(loop, store, first, second):
    async def work(tx):
        await tx.insert(User(id=first, name=Name(first_name=first.title())))
        await tx.insert(User(id=second, name=Name(first_name=second.title())))

    loop.run_until_complete(store.transaction(work))


@when(parsers.parse('I create user "{user_id}" in a transaction that fails afterwards'))
def create_user_then_fail(loop, store, user_id):
    async def work(tx):
        await tx.insert(User(id=user_id, name=Name(first_name=user_id.title())))
        raise RuntimeError("failed after insert")

    with pytest.raises(RuntimeError):
        loop.run_until_complete(store.transaction(work))


@when(parsers.parse('I create user "{user_id}" with a wallet and {count:d} addresses'))
def create_user_with_children(loop, store, user_id, count):
    user = User(id=user_id, name=Name(first_name=user_id.title()))
    user.wallet = Wallet(id=f"wallet-{user_id}")
    user.addresses = [Address(address=f"Jalan {i}") for i in range(count)]
    loop.run_until_complete(store.insert(user))


@when(parsers.parse('I delete the todo "{title}"'))
def delete_todo(loop, store, title):
    loop.run_until_complete(store.delete(Todo, {"title": title}))


@then(parsers.parse("the store should contain {count:d} users"))
def users_count(loop, store, count):
    assert loop.run_until_complete(store.count(User)) == count


@then(parsers.parse('user "{user_id}" should have a wallet and {count:d} addresses'))
def user_children(loop, store, user_id, count):
    user = loop.run_until_complete(store.find_one(User, Eq(id=user_id), preload=[ALL]))
    assert user.wallet is not None
    assert user.wallet.user_id == user_id
    assert len(user.addresses) == count


@then(parsers.parse("the store should list {count:d} todos"))
def todos_count(loop, store, count):
    assert len(loop.run_until_complete(store.find_all(Todo))) == count


@then(parsers.parse("the store should list {count:d} todos when unscoped"))
def todos_count_unscoped(loop, store, count):
    assert len(loop.run_until_complete(store.find_all(Todo, unscoped=True))) == count
