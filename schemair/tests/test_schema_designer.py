"""Tests for the LLM-backed schema designer, using a fake chat function."""

import json
import pytest
from schemair.agents import ProducerError, SchemaOrchestrator
from schemair.agents.roles import SchemaDesigner
from schemair.agents.roles.schema_designer import _fix_common_llm_mistakes
from schemair.ir.validators import Violation


def _model_json(name, plain=(), foreign=()):
    return {
        "name": name,
        "description": f"{name} table.",
        "primaryField": {"name": "id", "type": "uuid", "description": "Primary Key."},
        "foreignFields": [
            {
                "name": field,
                "type": "uuid",
                "description": f"Target {target}.",
                "relation": {"name": relation, "targetModel": target},
            }
            for field, relation, target in foreign
        ],
        "plainFields": [
            {"name": n, "type": t, "description": f"{n}.", "nullable": False} for n, t in plain
        ],
        "uniqueIndexes": [],
        "plainIndexes": [],
        "ginIndexes": [],
    }


SHOP_REPLIES = {
    "schema-01-actors.prisma": {
        "tablesToCreate": ["users"],
        "validationReview": "users belongs to Actors.",
        "confirmedTables": ["users"],
        "models": [_model_json("users", plain=[("email", "TEXT")])],
    },
    "schema-02-orders.prisma": {
        "tablesToCreate": ["orders", "order_items"],
        "validationReview": "users is owned by Actors; only referenced.",
        "confirmedTables": ["orders", "order_items"],
        "models": [
            _model_json("orders", foreign=[("user_id", "user", "users")], plain=[("placed_at", "timestamp")]),
            _model_json("order_items", foreign=[("order_id", "order", "orders")], plain=[("qty", "integer")]),
        ],
    },
}


def _chat_by_component(replies):
    requests = []

    def chat_fn(messages):
        requests.append(list(messages))
        payload = messages[1]["content"]
        for filename, reply in replies.items():
            if f'targetComponent "{filename}"' in payload:
                return "```json\n" + json.dumps(reply) + "\n```"
        raise AssertionError("unknown component in prompt")

    return chat_fn, requests


def test_propose_parses_and_corrects_types(shop_components):
    chat_fn, requests = _chat_by_component(SHOP_REPLIES)
    designer = SchemaDesigner(chat_fn=chat_fn)

    candidate = designer.propose(shop_components[1], [shop_components[0]], "A shop.")

    orders = candidate.models[0]
    assert orders.foreign_fields[0].relation.target_model == "users"
    assert orders.plain_fields[0].type == "datetime"
    assert candidate.models[1].plain_fields[0].type == "int"
    assert candidate.confirmed_tables == ["orders", "order_items"]

    system, user = requests[0]
    assert system["role"] == "system"
    payload = json.loads(user["content"].split("\n\nCreate the models")[0])
    assert payload["requirementAnalysisReport"] == "A shop."
    assert payload["targetComponent"]["tables"] == ["orders", "order_items"]
    assert payload["otherComponents"][0]["namespace"] == "Actors"
    assert "Tables to create: orders, order_items" in user["content"]


def test_repair_messages_include_feedback_and_previous_reply(shop_components):
    chat_fn, requests = _chat_by_component(SHOP_REPLIES)
    designer = SchemaDesigner(chat_fn=chat_fn)
    target, others = shop_components[0], [shop_components[1]]

    designer.propose(target, others, "")
    feedback = [
        Violation(
            kind="DuplicateField",
            path=("component:schema-01-actors.prisma", "model:users", "field:email"),
            message="users: duplicate field name 'email'",
        )
    ]
    designer.propose(target, others, "", feedback)

    repair = requests[1][-1]
    assert repair["role"] == "user"
    assert "DuplicateField" in repair["content"]
    assert '"tablesToCreate"' in repair["content"]


def test_malformed_replies_become_producer_errors(shop_components):
    designer = SchemaDesigner(chat_fn=lambda messages: "I cannot help with that.")
    with pytest.raises(ProducerError, match="malformed response"):
        designer.propose(shop_components[0], [], "")


def test_transport_failures_become_producer_errors(shop_components):
    def chat_fn(messages):
        raise ConnectionError("connection refused")

    with pytest.raises(ProducerError, match="connection refused"):
        SchemaDesigner(chat_fn=chat_fn).propose(shop_components[0], [], "")


def test_designer_end_to_end(shop_components):
    chat_fn, _ = _chat_by_component(SHOP_REPLIES)
    orchestrator = SchemaOrchestrator(SchemaDesigner(chat_fn=chat_fn), max_repair_attempts=1, max_workers=2)

    result = orchestrator.generate(shop_components, "A shop.")

    assert result.accepted, result.violations
    orders = result.files["schema-02-orders.prisma"]
    assert "  placed_at DateTime @db.Timestamptz\n" in orders
    assert "  order_items order_items[]\n" in orders
    assert "  orders orders[]\n" in result.files["schema-01-actors.prisma"]


def test_fix_common_llm_mistakes_leaves_unknown_types():
    data = {"models": [{"name": "m", "plainFields": [{"name": "a", "type": "Money"}, {"name": "b", "type": "Bool"}]}]}
    fixed = _fix_common_llm_mistakes(data)
    assert [f["type"] for f in fixed["models"][0]["plainFields"]] == ["money", "boolean"]
