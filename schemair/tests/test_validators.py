"""Tests for structural validation."""

from schemair.ir.schema import (
    Application,
    CandidateModels,
    Component,
    File,
    ForeignField,
    GinIndex,
    PlainField,
    PlainIndex,
    Relation,
    UniqueIndex,
    ValidatedApplication,
)
from schemair.ir.validators import validate_application, validate_candidate


def _single_file_app(*models, filename="schema-01-actors.prisma", namespace="Actors"):
    return Application(files=[File(filename=filename, namespace=namespace, models=list(models))])


def _component(*tables, filename="schema-01-actors.prisma", namespace="Actors"):
    return Component(filename=filename, namespace=namespace, tables=list(tables))


def test_minimal_application_is_accepted(actors_application, actors_component):
    """A single component with a matching one-model file validates."""
    result = validate_application(actors_application, [actors_component])
    assert result.accepted
    assert result.violations == []
    assert isinstance(result.application, ValidatedApplication)
    assert result.application.application == actors_application
    assert result.application.components == [actors_component]
    assert result.application.issued


def test_unowned_model_is_reported_once(actors_users, actors_component, make_model):
    """An extra table outside the component's ownership yields one UnexpectedModel."""
    app = _single_file_app(actors_users, make_model("actors_profiles"))
    result = validate_application(app, [actors_component])
    assert not result.accepted
    assert result.application is None
    assert len(result.violations) == 1
    violation = result.violations[0]
    assert violation.kind == "UnexpectedModel"
    assert violation.path[-1] == "model:actors_profiles"
    assert violation.path[0] == "component:schema-01-actors.prisma"


def test_missing_model(actors_users, make_model):
    component = _component("actors_users", "actors_admins")
    result = validate_application(_single_file_app(actors_users), [component])
    assert result.kinds() == ["MissingModel"]
    assert result.violations[0].details["model"] == "actors_admins"


def test_file_correspondence(actors_users, make_model, actors_component):
    components = [
        actors_component,
        _component("orders", filename="schema-02-orders.prisma", namespace="Orders"),
    ]
    app = Application(
        files=[
            File(filename="schema-01-actors.prisma", namespace="People", models=[actors_users]),
            File(filename="schema-09-extra.prisma", namespace="Extra", models=[make_model("extras")]),
        ]
    )
    kinds = validate_application(app, components).kinds()
    assert "NamespaceMismatch" in kinds
    assert "MissingFile" in kinds
    assert "UnexpectedFile" in kinds


def test_duplicate_and_empty_files(actors_users, actors_component):
    app = Application(
        files=[
            File(filename="schema-01-actors.prisma", namespace="Actors", models=[actors_users]),
            File(filename="schema-01-actors.prisma", namespace="Actors", models=[]),
        ]
    )
    kinds = validate_application(app, [actors_component]).kinds()
    assert "DuplicateFile" in kinds
    assert "EmptyFile" in kinds


def test_invalid_filename(actors_users):
    component = _component("actors_users", filename="actors.sql")
    app = _single_file_app(actors_users, filename="actors.sql")
    assert validate_application(app, [component]).kinds() == ["InvalidFilename"]


def test_duplicate_model_across_files(make_model):
    components = [
        _component("users"),
        _component("accounts", filename="schema-02-accounts.prisma", namespace="Accounts"),
    ]
    app = Application(
        files=[
            File(filename="schema-01-actors.prisma", namespace="Actors", models=[make_model("users")]),
            File(
                filename="schema-02-accounts.prisma",
                namespace="Accounts",
                models=[make_model("accounts"), make_model("users")],
            ),
        ]
    )
    result = validate_application(app, components)
    assert "DuplicateModel" in result.kinds()
    dup = [v for v in result.violations if v.kind == "DuplicateModel"]
    assert len(dup) == 1
    assert dup[0].details["filename"] == "schema-02-accounts.prisma"


def test_duplicate_field_names(make_model):
    """Two plain fields named "code" are rejected."""
    model = make_model("coupons", plain=[("code", "string"), ("code", "int")])
    result = validate_application(_single_file_app(model), [_component("coupons")])
    assert result.kinds() == ["DuplicateField"]
    assert result.violations[0].path[-1] == "field:code"


def test_foreign_field_clashing_with_plain_field(make_model):
    users = make_model("users")
    model = make_model("orders", foreign=[("user_id", "user", "users")], plain=[("user_id", "uuid")])
    result = validate_application(_single_file_app(users, model), [_component("users", "orders")])
    assert result.kinds() == ["DuplicateField"]


def test_invalid_identifiers_and_types(make_model):
    model = make_model("Orders", plain=[("Total", "double"), ("note", "varchar")])
    result = validate_application(_single_file_app(model), [_component("Orders")])
    kinds = result.kinds()
    assert kinds.count("InvalidIdentifier") == 2
    assert "UnknownScalarType" in kinds
    bad_type = [v for v in result.violations if v.kind == "UnknownScalarType"][0]
    assert bad_type.details["type"] == "varchar"


def test_invalid_relation_name(make_model):
    users = make_model("users")
    orders = make_model("orders", foreign=[("user_id", "the-user", "users")])
    result = validate_application(_single_file_app(users, orders), [_component("users", "orders")])
    assert result.kinds() == ["InvalidRelationName"]


def test_dangling_reference_names_the_field(shop_application, shop_components):
    """Removing a relation target yields a DanglingReference at the foreign field."""
    assert validate_application(shop_application, shop_components).accepted

    orders_file = shop_application.files[1]
    without_users = Application(
        files=[File(filename="schema-01-actors.prisma", namespace="Actors", models=[]), orders_file]
    )
    result = validate_application(without_users, shop_components)
    dangling = [v for v in result.violations if v.kind == "DanglingReference"]
    assert len(dangling) == 1
    assert dangling[0].path[-2:] == ("model:orders", "field:user_id")
    assert dangling[0].details["target"] == "users"


def test_forward_references_across_files(make_model):
    """A model may reference a model declared in a later file."""
    components = [
        _component("orders", filename="schema-01-orders.prisma", namespace="Orders"),
        _component("users", filename="schema-02-actors.prisma"),
    ]
    app = Application(
        files=[
            File(
                filename="schema-01-orders.prisma",
                namespace="Orders",
                models=[make_model("orders", foreign=[("user_id", "user", "users")])],
            ),
            File(filename="schema-02-actors.prisma", namespace="Actors", models=[make_model("users")]),
        ]
    )
    assert validate_application(app, components).accepted


def test_parallel_relations_need_distinct_mapping_names(make_model):
    users = make_model("users")

    def orders_with(buyer_mapping, seller_mapping):
        base = make_model("orders")
        return base.model_copy(
            update={
                "foreign_fields": [
                    ForeignField(
                        name="buyer_id",
                        description="Buyer.",
                        relation=Relation(name="buyer", target_model="users", mapping_name=buyer_mapping),
                    ),
                    ForeignField(
                        name="seller_id",
                        description="Seller.",
                        relation=Relation(name="seller", target_model="users", mapping_name=seller_mapping),
                    ),
                ]
            }
        )

    components = [_component("users", "orders")]
    ambiguous = validate_application(_single_file_app(users, orders_with(None, None)), components)
    assert ambiguous.kinds() == ["AmbiguousRelation", "AmbiguousRelation"]

    same = validate_application(_single_file_app(users, orders_with("OrderUser", "OrderUser")), components)
    assert same.kinds() == ["AmbiguousRelation"]
    assert same.violations[0].path[-1] == "field:seller_id"

    distinct = validate_application(
        _single_file_app(users, orders_with("OrderBuyer", "OrderSeller")), components
    )
    assert distinct.accepted


def test_mapping_name_must_be_an_identifier(make_model):
    """A mapping name with quotes or newlines would break the @relation(...) label."""
    users = make_model("users")
    posts = make_model("posts").model_copy(
        update={
            "foreign_fields": [
                ForeignField(
                    name="author_id",
                    description="Author.",
                    relation=Relation(name="author", target_model="users", mapping_name='Auth"or\nX'),
                )
            ]
        }
    )
    result = validate_application(_single_file_app(users, posts), [_component("users", "posts")])
    assert not result.accepted
    assert result.kinds() == ["InvalidRelationName"]
    assert result.violations[0].path[-2:] == ("model:posts", "relation:author")
    assert result.violations[0].details["mappingName"] == 'Auth"or\nX'


def test_single_relation_needs_no_mapping_name(shop_application, shop_components):
    assert validate_application(shop_application, shop_components).accepted


def test_relation_name_conflicts(make_model):
    users = make_model("users", plain=[("orders", "int")])
    orders = make_model("orders", foreign=[("user_id", "user_id", "users")])
    result = validate_application(_single_file_app(users, orders), [_component("users", "orders")])
    conflicts = [v for v in result.violations if v.kind == "RelationNameConflict"]
    # relation "user_id" collides with its own column; back reference "orders" with users.orders
    assert {v.details["member"] for v in conflicts} == {"user_id", "orders"}


def test_index_checks(make_model):
    model = make_model(
        "articles",
        plain=[("title", "string"), ("hits", "int")],
        unique_indexes=[UniqueIndex(field_names=["title", "title"])],
        plain_indexes=[PlainIndex(field_names=[]), PlainIndex(field_names=["missing", "Bad-Name"])],
        gin_indexes=[GinIndex(field_name="hits"), GinIndex(field_name="body"), GinIndex(field_name="")],
    )
    result = validate_application(_single_file_app(model), [_component("articles")])
    by_location = {(v.kind, v.path[-1]) for v in result.violations}
    assert ("DuplicateIndexField", "index:unique[0]") in by_location
    assert ("EmptyIndex", "index:plain[0]") in by_location
    assert ("UnknownIndexField", "index:plain[1]") in by_location
    assert ("InvalidIdentifier", "index:plain[1]") in by_location
    assert ("NonTextFullTextField", "index:gin[0]") in by_location
    assert ("UnknownIndexField", "index:gin[1]") in by_location
    assert ("EmptyIndex", "index:gin[2]") in by_location
    assert len(result.violations) == 7


def test_indexes_may_use_primary_and_foreign_fields(make_model):
    users = make_model("users")
    orders = make_model(
        "orders",
        foreign=[("user_id", "user", "users")],
        plain=[("created_at", "datetime")],
        unique_indexes=[UniqueIndex(field_names=["id", "user_id"])],
        plain_indexes=[PlainIndex(field_names=["user_id", "created_at"])],
    )
    assert validate_application(_single_file_app(users, orders), [_component("users", "orders")]).accepted


def test_all_violations_collected(make_model):
    """Validation is not fail-fast."""
    bad = make_model(
        "Bad",
        foreign=[("x_id", "x", "nowhere")],
        plain=[("code", "text"), ("code", "string")],
    )
    kinds = set(validate_application(_single_file_app(bad), [_component("good")]).kinds())
    assert {
        "MissingModel",
        "UnexpectedModel",
        "InvalidIdentifier",
        "DuplicateField",
        "UnknownScalarType",
        "DanglingReference",
    } <= kinds


def test_validation_is_repeatable(shop_application, shop_components):
    first = validate_application(shop_application, shop_components)
    second = validate_application(shop_application, shop_components)
    assert first == second


def test_candidate_leakage_names_owner(make_model, shop_components):
    target, other = shop_components[1], shop_components[0]
    candidate = CandidateModels(
        tables_to_create=["orders", "order_items"],
        confirmed_tables=["orders", "order_items"],
        models=[
            make_model("orders", foreign=[("user_id", "user", "users")]),
            make_model("order_items", foreign=[("order_id", "order", "orders")]),
            make_model("users"),
        ],
    )
    violations = validate_candidate(target, [other], candidate)
    assert [v.kind for v in violations] == ["UnexpectedModel"]
    assert violations[0].details["owner"] == "schema-01-actors.prisma"


def test_candidate_references_resolve_against_static_plan(make_model, shop_components):
    """References to other components' tables are fine before they are generated."""
    target, other = shop_components[1], shop_components[0]
    candidate = CandidateModels(
        models=[
            make_model("orders", foreign=[("user_id", "user", "users")]),
            make_model("order_items", foreign=[("coupon_id", "coupon", "coupons")]),
        ],
    )
    violations = validate_candidate(target, [other], candidate)
    assert [v.kind for v in violations] == ["DanglingReference"]


def test_candidate_confirmation_mismatch(make_model, shop_components):
    target, other = shop_components[1], shop_components[0]
    candidate = CandidateModels(
        tables_to_create=["orders"],
        confirmed_tables=["orders", "order_items"],
        models=[make_model("orders"), make_model("order_items")],
    )
    violations = validate_candidate(target, [other], candidate)
    assert [v.kind for v in violations] == ["ConfirmationMismatch"]
    assert violations[0].details["step"] == "tablesToCreate"


def test_candidate_missing_and_empty(shop_components):
    target, other = shop_components[1], shop_components[0]
    kinds = [v.kind for v in validate_candidate(target, [other], CandidateModels(models=[]))]
    assert kinds == ["EmptyFile", "MissingModel", "MissingModel"]


def test_plain_field_types_are_checked_not_coerced():
    field = PlainField(name="note", type="varchar", description="Note.")
    assert field.type == "varchar"
