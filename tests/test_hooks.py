"""
Lifecycle hook tests - ordering, async hooks, aborts.
Challenge: A rejecting hook leaves no trace in the database.
"""

from dataclasses import dataclass, field

import pytest
import pytest_asyncio
import sqlalchemy as sa

from recordstore.core.errors import ConstraintViolation, ValidationAbort
from recordstore.db.models import Name, Sample, User
from recordstore.db.predicates import Eq
from recordstore.db.schema import EntityDescriptor, FieldSpec, Registry
from recordstore.db.session import create_engine
from recordstore.db.store import RecordStore

notes = sa.Table(
    "notes",
    sa.MetaData(),
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("body", sa.String(100), nullable=False),
)


@dataclass
class Note:
    id: int = 0
    body: str = ""
    calls: list[str] = field(default_factory=list)

    def before_save(self, scope):
        self.calls.append("before_save")

    def before_create(self, scope):
        self.calls.append("before_create")
        if self.body == "forbidden":
            raise ValueError("body is forbidden")

    async def after_create(self, scope):
        self.calls.append("after_create")

    def after_save(self, scope):
        self.calls.append("after_save")

    def before_update(self, scope):
        self.calls.append("before_update")

    def after_update(self, scope):
        self.calls.append("after_update")

    def before_delete(self, scope):
        self.calls.append("before_delete")
        if self.body == "keep":
            raise ValidationAbort("note is pinned")

    def after_delete(self, scope):
        self.calls.append("after_delete")

    def after_find(self, scope):
        self.calls.append("after_find")


@pytest_asyncio.fixture
async def note_store(settings):
    registry = Registry([EntityDescriptor(Note, notes, [FieldSpec.of("id"), FieldSpec.of("body")])])
    store = RecordStore(create_engine(settings), registry)
    await store.migrate()
    yield store
    await store.close()


@pytest.mark.asyncio
async def test_create_hooks_run_in_order(note_store):
    note = Note(body="hello")
    await note_store.insert(note)
    assert note.calls == ["before_save", "before_create", "after_create", "after_save"]


@pytest.mark.asyncio
async def test_update_hooks_run_on_save(note_store):
    note = Note(body="hello")
    await note_store.insert(note)
    note.calls.clear()
    note.body = "changed"
    await note_store.save(note)
    assert note.calls == ["before_save", "before_update", "after_update", "after_save"]


@pytest.mark.asyncio
async def test_create_hooks_run_on_keyed_upsert(note_store):
    note = Note(id=7, body="hello")
    assert await note_store.upsert(note) == 1
    assert note.calls == ["before_save", "before_create", "after_create", "after_save"]


@pytest.mark.asyncio
async def test_save_of_missing_row_runs_each_hook_once(note_store):
    note = Note(id=9, body="new")
    assert await note_store.save(note) == 1
    assert note.calls == ["before_save", "before_update", "before_create", "after_create", "after_save"]
    assert await note_store.count(Note) == 1


@pytest.mark.asyncio
async def test_after_find_runs_for_loaded_entities(note_store):
    await note_store.insert([Note(body="a"), Note(body="b")])
    found = await note_store.find_all(Note)
    assert [n.calls for n in found] == [["after_find"], ["after_find"]]


@pytest.mark.asyncio
async def test_failing_hook_aborts_and_chains_cause(note_store):
    with pytest.raises(ValidationAbort) as info:
        await note_store.insert([Note(body="fine"), Note(body="forbidden")])
    assert isinstance(info.value.__cause__, ValueError)
    assert await note_store.count(Note) == 0


@pytest.mark.asyncio
async def test_validation_abort_passes_through(note_store):
    note = Note(body="keep")
    await note_store.insert(note)
    with pytest.raises(ValidationAbort, match="pinned"):
        await note_store.delete(note)
    assert await note_store.count(Note) == 1


@pytest.mark.asyncio
async def test_delete_hooks(note_store):
    note = Note(body="bye")
    await note_store.insert(note)
    note.calls.clear()
    await note_store.delete(note)
    assert note.calls == ["before_delete", "after_delete"]


@pytest.mark.asyncio
async def test_hook_writes_join_the_operation_transaction(store):
    class AuditedUser(User):
        async def after_create(self, scope):
            await scope.exec("INSERT INTO sample (id, name) VALUES (?, ?)", self.id, "audit")

    # Reuse the users table through a registry that maps the subclass
    descriptor = store.registry.descriptor(User)
    registry = Registry([EntityDescriptor(AuditedUser, descriptor.table, descriptor.fields)])
    audited = RecordStore(store.engine, registry)

    await audited.insert(AuditedUser(id="lingga", name=Name(first_name="Lingga")))
    assert await store.query("SELECT name FROM sample WHERE id = ?", "lingga") == [{"name": "audit"}]

    # A failing write inside the hook keeps its type and undoes the parent insert
    await store.insert(Sample(id="budi", name="taken"))
    with pytest.raises(ConstraintViolation):
        await audited.insert(AuditedUser(id="budi", name=Name(first_name="Budi")))
    assert await store.count(User, Eq(id="budi")) == 0


@pytest.mark.asyncio
async def test_user_id_is_generated_before_create(store):
    user = User(password="rahasia", name=Name(first_name="Eko"))
    await store.insert(user)
    assert user.id.startswith("user-")
    assert (await store.find_one(User, Eq(id=user.id))).name.first_name == "Eko"


@pytest.mark.asyncio
async def test_user_id_is_generated_before_upsert(store):
    user = User(password="secret", name=Name(first_name="Eko"))
    assert await store.upsert(user) == 1
    assert user.id.startswith("user-")
    assert await store.query("SELECT id FROM users WHERE id = ?", user.id) == [{"id": user.id}]
    assert await store.count(User, Eq(id="")) == 0
