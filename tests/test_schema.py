"""
Schema descriptor tests - field mapping, zero policies, relation metadata.
"""

from datetime import datetime

import pytest
import sqlalchemy as sa

from recordstore.core.errors import SchemaError
from recordstore.db.models import (
    USER_LIKED_PRODUCTS,
    USER_WALLET,
    WALLET_USER,
    Name,
    User,
    UserLog,
    Wallet,
    build_registry,
    user_descriptor,
    user_log_descriptor,
)
from recordstore.db.schema import (
    AutoStamp,
    EntityDescriptor,
    FieldSpec,
    Patch,
    Registry,
    Relation,
    RelationKind,
    is_zero,
)


def test_is_zero():
    assert is_zero(None)
    assert is_zero("")
    assert is_zero(0)
    assert not is_zero("x")
    assert not is_zero(datetime(2024, 1, 1))


def test_values_follow_attribute_paths():
    user = User(id="1", password="p", name=Name(first_name="Lingga", last_name="Pratama"))
    values = user_descriptor.values(user)
    assert values["first_name"] == "Lingga"
    assert values["last_name"] == "Pratama"
    assert "information" not in values


def test_values_can_omit_zero_fields():
    values = user_descriptor.values(User(password="p"), omit_zero=True)
    assert values == {"password": "p"}


def test_keep_policy_field_is_never_omitted():
    values = user_log_descriptor.values(UserLog(user_id="1"), omit_zero=True)
    assert values == {"user_id": "1", "action": ""}


def test_load_builds_nested_values():
    user = user_descriptor.load({"id": "1", "first_name": "Budi", "middle_name": None})
    assert user.id == "1"
    assert user.name.first_name == "Budi"
    assert user.name.middle_name is None
    assert user.name.last_name == ""


def test_load_with_prefix():
    user = user_descriptor.load({"wallet__id": "w", "user__id": "1", "user__first_name": "Joko"}, "user__")
    assert (user.id, user.name.first_name) == ("1", "Joko")


def test_descriptor_metadata():
    assert user_descriptor.pk.column == "id"
    assert not user_descriptor.autoincrement
    assert user_log_descriptor.autoincrement
    assert user_descriptor.field_for_column("created_at").stamp is AutoStamp.CREATED
    assert AutoStamp.UPDATED_MILLIS.on_update and AutoStamp.UPDATED_MILLIS.millis
    with pytest.raises(SchemaError):
        user_descriptor.field_for_column("email")


def test_descriptor_rejects_unknown_columns():
    table = sa.Table("things", sa.MetaData(), sa.Column("id", sa.Integer, primary_key=True))
    with pytest.raises(SchemaError):
        EntityDescriptor(Name, table, [FieldSpec.of("id"), FieldSpec.of("name")])


def test_descriptor_requires_single_column_key():
    table = sa.Table(
        "pairs",
        sa.MetaData(),
        sa.Column("a", sa.Integer, primary_key=True),
        sa.Column("b", sa.Integer, primary_key=True),
    )
    with pytest.raises(SchemaError):
        EntityDescriptor(Name, table, [FieldSpec.of("a"), FieldSpec.of("b")])


def test_patch_maps_attributes_to_columns():
    patch = Patch({"name.middle_name": ""}, password="x")
    assert patch.columns(user_descriptor) == {"middle_name": "", "password": "x"}


def test_relation_keys():
    assert USER_WALLET.owner_key() == "id"
    assert USER_WALLET.target_key() == "user_id"
    assert WALLET_USER.owner_key() == "user_id"
    assert WALLET_USER.target_key() == "id"
    assert USER_LIKED_PRODUCTS.collection
    assert USER_WALLET.empty() is None


def test_registry_lookups():
    registry = build_registry()
    assert registry.descriptor(User) is user_descriptor
    assert registry.relation(User, "wallet") is USER_WALLET
    assert [t.name for t in registry.tables()][-1] == "user_like_product"
    with pytest.raises(SchemaError):
        registry.relation(User, "friends")


def test_registry_validates_relations():
    registry = Registry([user_descriptor])
    with pytest.raises(SchemaError):
        # Wallet is not registered
        registry.add_relation(Relation(User, "wallet", RelationKind.HAS_ONE, Wallet, foreign_key="user_id"))
