"""Producer runner with repair loop support."""

import json
from dataclasses import asdict, dataclass, field
from typing import List, Optional
from .base import BaseProducer, ProducerError
from schemair.ir.schema import CandidateModels, Component, File
from schemair.ir.validators import Violation, validate_candidate
from schemair.config.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ComponentOutcome:
    """Result of generating one component."""

    component: Component
    file: Optional[File] = None
    violations: List[Violation] = field(default_factory=list)
    error: Optional[str] = None
    attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return self.file is not None


def run_with_repair(
    producer: BaseProducer,
    target: Component,
    others: List[Component],
    context: str,
    max_retries: int = 2,
    feedback: Optional[List[Violation]] = None,
) -> ComponentOutcome:
    """
    Run a producer for one component with a repair loop.

    The producer proposes a candidate, which is validated against the
    component's ownership. Violations are fed back for up to ``max_retries``
    further proposals; producer failures consume the same budget.

    Args:
        producer: Producer to run
        target: Component to generate
        others: Every other component
        context: Opaque requirements text
        max_retries: Maximum number of repair attempts (default: 2)
        feedback: Violations to hand to the first proposal, e.g. from
            whole-application validation

    Returns:
        ComponentOutcome with the accepted file, or the last violations / error
    """
    logger.info(
        f"Running {producer.name} for {target.filename} with repair loop "
        f"(max_retries={max_retries})"
    )
    outcome = ComponentOutcome(component=target)

    for attempt in range(max_retries + 1):
        outcome.attempts = attempt + 1
        try:
            candidate = producer.propose(target, others, context, feedback)
        except ProducerError as e:
            outcome.error = str(e)
            logger.warning(
                f"{producer.name}: producer failed for {target.filename} "
                f"(attempt {attempt + 1}/{max_retries + 1}): {e}"
            )
            continue

        violations = validate_candidate(target, others, candidate)
        if not violations:
            logger.info(
                f"{producer.name}: {target.filename} passed validation after "
                f"{attempt} repair attempt(s)"
            )
            outcome.file = File(
                filename=target.filename,
                namespace=target.namespace,
                models=candidate.models,
            )
            outcome.violations = []
            outcome.error = None
            return outcome

        logger.warning(
            f"{producer.name}: {target.filename} has {len(violations)} violations "
            f"(attempt {attempt + 1}/{max_retries + 1})"
        )
        outcome.violations = violations
        outcome.error = None
        feedback = violations

    error_msg = (
        f"{producer.name} failed to produce {target.filename} after {max_retries} retries"
    )
    if outcome.violations:
        error_msg += f". Remaining violations: {len(outcome.violations)}"
        for v in outcome.violations[:5]:
            logger.error(f"  - {v.kind} at {v.location}: {v.message}")
        if len(outcome.violations) > 5:
            logger.error(f"  ... and {len(outcome.violations) - 5} more violations")
    elif outcome.error:
        error_msg += f". Last error: {outcome.error}"
    logger.error(error_msg)
    outcome.error = error_msg
    return outcome


def build_repair_prompt(violations: List[Violation], candidate: Optional[CandidateModels] = None) -> str:
    """
    Build a repair prompt from violations.

    Args:
        violations: Violations found in the previous candidate
        candidate: Previous candidate, echoed back when available

    Returns:
        Formatted prompt string
    """
    issues_json = json.dumps([asdict(v) for v in violations], indent=2)

    prompt = f"""The previous function call result was rejected. These violations were found:

{issues_json}
"""
    if candidate is not None:
        prompt += f"""
Previous result:

{candidate.model_dump_json(by_alias=True, indent=2)}
"""
    prompt += """
Fix every violation and return the complete corrected result as JSON.
Create exactly the tables in targetComponent.tables and nothing owned by otherComponents.
"""
    return prompt
