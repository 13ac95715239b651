"""Shared fixtures for SchemaIR tests."""

import pytest
from schemair.ir.schema import (
    Application,
    Component,
    File,
    ForeignField,
    Model,
    PlainField,
    PrimaryField,
    Relation,
)


def build_model(name, foreign=(), plain=(), **kwargs):
    """Model with an ``id`` primary key; ``foreign`` is (field, relation, target) triples."""
    return Model(
        name=name,
        description=f"{name} table.",
        primary_field=PrimaryField(),
        foreign_fields=[
            ForeignField(
                name=field,
                description=f"Target {target}.",
                relation=Relation(name=relation, target_model=target),
            )
            for field, relation, target in foreign
        ],
        plain_fields=[
            PlainField(name=n, type=t, description=f"{n}.") for n, t in plain
        ],
        **kwargs,
    )


@pytest.fixture
def make_model():
    return build_model


@pytest.fixture
def actors_component():
    return Component(
        filename="schema-01-actors.prisma",
        namespace="Actors",
        tables=["actors_users"],
    )


@pytest.fixture
def actors_users():
    return Model(
        name="actors_users",
        description="Users.",
        primary_field=PrimaryField(name="id", description="Primary Key."),
        plain_fields=[
            PlainField(name="name", type="string", description="User name.", nullable=False)
        ],
    )


@pytest.fixture
def actors_application(actors_users):
    return Application(
        files=[
            File(
                filename="schema-01-actors.prisma",
                namespace="Actors",
                models=[actors_users],
            )
        ]
    )


@pytest.fixture
def shop_components():
    return [
        Component(filename="schema-01-actors.prisma", namespace="Actors", tables=["users"]),
        Component(
            filename="schema-02-orders.prisma",
            namespace="Orders",
            tables=["orders", "order_items"],
        ),
    ]


@pytest.fixture
def shop_application():
    users = build_model("users", plain=[("email", "string"), ("nickname", "string")])
    orders = build_model(
        "orders",
        foreign=[("user_id", "user", "users")],
        plain=[("created_at", "datetime")],
    )
    items = build_model(
        "order_items",
        foreign=[("order_id", "order", "orders")],
        plain=[("quantity", "int"), ("price", "double")],
    )
    return Application(
        files=[
            File(filename="schema-01-actors.prisma", namespace="Actors", models=[users]),
            File(filename="schema-02-orders.prisma", namespace="Orders", models=[orders, items]),
        ]
    )
