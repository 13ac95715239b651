"""Schema designer: an LLM producer that writes one component's models."""

import json
from typing import Callable, Dict, List, Optional
from schemair.agents.base import BaseProducer
from schemair.agents.runner import build_repair_prompt
from schemair.agents.tools.agent_retry import call_llm_with_retry
from schemair.agents.tools.error_handling import handle_producer_error
from schemair.agents.tools.llm_client import chat
from schemair.ir.schema import CandidateModels, Component
from schemair.ir.validators import Violation
from schemair.prompts.loader import load_prompt, render_prompt
from schemair.config.logging import get_logger

logger = get_logger(__name__)

TYPE_CORRECTIONS = {
    "bool": "boolean",
    "integer": "int",
    "bigint": "int",
    "float": "double",
    "decimal": "double",
    "number": "double",
    "text": "string",
    "varchar": "string",
    "url": "uri",
    "timestamp": "datetime",
    "date": "datetime",
}


def _fix_common_llm_mistakes(data: dict) -> dict:
    """
    Auto-correct scalar type synonyms in plainFields.

    Only obvious synonyms are rewritten; anything else is left for the
    validator to report.
    """
    for model in data.get("models") or []:
        if not isinstance(model, dict):
            continue
        for field in model.get("plainFields") or []:
            if not isinstance(field, dict) or not isinstance(field.get("type"), str):
                continue
            wrong = field["type"]
            correct = TYPE_CORRECTIONS.get(wrong.lower(), wrong.lower())
            if correct != wrong:
                logger.warning(
                    f"SchemaDesigner: Auto-corrected {model.get('name')}.{field.get('name')} "
                    f"type {wrong!r} -> {correct!r}"
                )
                field["type"] = correct
    return data


class SchemaDesigner(BaseProducer):
    """Generates the models of one component from requirements text."""

    name = "schema_designer"

    def __init__(self, chat_fn: Optional[Callable[[List[Dict[str, str]]], str]] = None):
        """
        Initialize schema designer.

        Args:
            chat_fn: Function sending chat messages to an LLM (default: llm_client.chat)
        """
        self.chat_fn = chat_fn or chat
        self._previous: Dict[str, CandidateModels] = {}

    def build_messages(
        self,
        target: Component,
        others: List[Component],
        context: str,
        feedback: Optional[List[Violation]] = None,
    ) -> List[Dict[str, str]]:
        payload = json.dumps(
            {
                "requirementAnalysisReport": context,
                "targetComponent": target.model_dump(),
                "otherComponents": [c.model_dump() for c in others],
            },
            indent=2,
        )
        user_content = render_prompt(
            load_prompt("roles/schema_user.txt"),
            INPUT_JSON=payload,
            FILENAME=target.filename,
            NAMESPACE=target.namespace,
            TABLES=", ".join(target.tables),
        )
        messages = [
            {"role": "system", "content": load_prompt("roles/schema_system.txt")},
            {"role": "user", "content": user_content},
        ]
        if feedback:
            messages.append({
                "role": "user",
                "content": build_repair_prompt(feedback, self._previous.get(target.filename)),
            })
        return messages

    def propose(
        self,
        target: Component,
        others: List[Component],
        context: str,
        feedback: Optional[List[Violation]] = None,
    ) -> CandidateModels:
        logger.info(
            f"SchemaDesigner: Generating {target.filename} "
            f"({len(target.tables)} tables{', repair' if feedback else ''})"
        )
        try:
            messages = self.build_messages(target, others, context, feedback)
            candidate = call_llm_with_retry(
                messages,
                CandidateModels,
                chat_fn=self.chat_fn,
                pre_process=_fix_common_llm_mistakes,
            )
        except Exception as e:
            handle_producer_error(self.name, f"propose {target.filename}", e)
            raise

        self._previous[target.filename] = candidate
        logger.info(
            f"SchemaDesigner: Generated {len(candidate.models)} models for {target.filename}"
        )
        return candidate
