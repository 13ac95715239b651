"""Orchestrator for generating a schema component by component."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, List, Optional, Tuple
from .base import BaseProducer, SchemaBoard
from .runner import ComponentOutcome, run_with_repair
from schemair.ir.schema import Application, Component, ValidatedApplication
from schemair.ir.validators import ValidationResult, Violation, validate_application
from schemair.planning.planner import check_components
from schemair.render.prisma import render_application
from schemair.config.settings import get_settings
from schemair.config.logging import get_logger

logger = get_logger(__name__)

COMPONENT_PREFIX = "component:"


@dataclass
class GenerationResult:
    """Outcome of a full generation run."""

    accepted: bool
    files: Dict[str, str] = field(default_factory=dict)
    application: Optional[ValidatedApplication] = None
    violations: List[Violation] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)  # filename -> reason
    outcomes: List[ComponentOutcome] = field(default_factory=list)


class SchemaOrchestrator:
    """Drives a producer over every component, then validates and renders."""

    def __init__(
        self,
        producer: BaseProducer,
        max_repair_attempts: Optional[int] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            producer: Producer invoked once per component (plus repairs)
            max_repair_attempts: Re-proposals per component (default: from settings)
            max_workers: Components generated concurrently (default: from settings)
        """
        settings = get_settings()
        self.producer = producer
        self.max_repair_attempts = (
            settings.max_repair_attempts if max_repair_attempts is None else max_repair_attempts
        )
        self.max_workers = max_workers or settings.max_workers
        logger.info(
            f"Initialized orchestrator with producer {producer.name} "
            f"(max_repair_attempts={self.max_repair_attempts}, max_workers={self.max_workers})"
        )

    def _generate_component(
        self,
        target: Component,
        components: List[Component],
        context: str,
        feedback: Optional[List[Violation]] = None,
        max_retries: Optional[int] = None,
    ) -> ComponentOutcome:
        others = [c for c in components if c.filename != target.filename]
        return run_with_repair(
            self.producer,
            target,
            others,
            context,
            max_retries=self.max_repair_attempts if max_retries is None else max_retries,
            feedback=feedback,
        )

    def _run_all(self, jobs: List[Tuple[Component, Callable[[], ComponentOutcome]]]) -> List[ComponentOutcome]:
        """Run jobs concurrently; a crashing job becomes a failed outcome for its component."""
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [(component, pool.submit(job)) for component, job in jobs]
            outcomes: List[ComponentOutcome] = []
            for component, future in futures:
                try:
                    outcomes.append(future.result())
                except Exception as e:
                    logger.error(f"Generation of {component.filename} crashed: {e}", exc_info=True)
                    outcomes.append(ComponentOutcome(component=component, error=str(e)))
        return outcomes

    def generate(self, components: List[Component], context: str) -> GenerationResult:
        """
        Generate, validate and render every component.

        Components are produced concurrently; a failure in one does not stop
        the others. The assembled application is validated as a whole before
        rendering. Violations it reports are routed back to the components
        they point at, which are re-proposed with that feedback while their
        repair budget lasts.

        Args:
            components: Component plan
            context: Opaque requirements text handed to the producer

        Returns:
            GenerationResult

        Raises:
            PlanningError: If the component plan itself is inconsistent
        """
        check_components(components)
        logger.info(f"Starting generation of {len(components)} components")

        outcomes = self._run_all(
            [(c, partial(self._generate_component, c, components, context)) for c in components]
        )

        board = SchemaBoard(components=list(components))
        failures: Dict[str, str] = {}
        for outcome in outcomes:
            if outcome.succeeded:
                board.publish(outcome.file)
            else:
                failures[outcome.component.filename] = outcome.error or "no candidate accepted"

        result = None if failures else validate_application(board.assemble(), components)
        while result is not None and not result.accepted:
            jobs = self._repair_jobs(result.violations, outcomes, components, context)
            if not jobs:
                break
            logger.warning(
                f"Assembled application rejected with {len(result.violations)} violations; "
                f"re-proposing {len(jobs)} components"
            )
            index = {o.component.filename: i for i, o in enumerate(outcomes)}
            for repaired in self._run_all(jobs):
                i = index[repaired.component.filename]
                repaired.attempts += outcomes[i].attempts
                outcomes[i] = repaired
                if repaired.succeeded:
                    board.publish(repaired.file, replace=True)
                else:
                    failures[repaired.component.filename] = repaired.error or "no candidate accepted"
            result = None if failures else validate_application(board.assemble(), components)

        if failures:
            logger.error(f"Generation failed for {len(failures)} of {len(components)} components")
            return GenerationResult(
                accepted=False,
                violations=[v for o in outcomes for v in o.violations],
                failures=failures,
                outcomes=outcomes,
            )

        return self._conclude(result, outcomes)

    def _repair_jobs(
        self,
        violations: List[Violation],
        outcomes: List[ComponentOutcome],
        components: List[Component],
        context: str,
    ) -> List[Tuple[Component, Callable[[], ComponentOutcome]]]:
        """Group violations by the component they point at, keeping those with budget left."""
        by_file: Dict[str, List[Violation]] = {}
        for v in violations:
            if v.path and v.path[0].startswith(COMPONENT_PREFIX):
                by_file.setdefault(v.path[0][len(COMPONENT_PREFIX):], []).append(v)

        jobs = []
        for outcome in outcomes:
            feedback = by_file.get(outcome.component.filename)
            remaining = self.max_repair_attempts + 1 - outcome.attempts
            if feedback and remaining > 0:
                job = partial(
                    self._generate_component,
                    outcome.component,
                    components,
                    context,
                    feedback=feedback,
                    max_retries=remaining - 1,
                )
                jobs.append((outcome.component, job))
        return jobs

    def finalize(
        self,
        application: Application,
        components: List[Component],
        outcomes: Optional[List[ComponentOutcome]] = None,
    ) -> GenerationResult:
        """Validate an assembled application and render it when accepted."""
        return self._conclude(validate_application(application, components), outcomes or [])

    def _conclude(self, result: ValidationResult, outcomes: List[ComponentOutcome]) -> GenerationResult:
        if not result.accepted:
            logger.error(
                f"Assembled application rejected with {len(result.violations)} violations"
            )
            return GenerationResult(accepted=False, violations=result.violations, outcomes=outcomes)

        files = render_application(result.application)
        logger.info("Generation completed")
        return GenerationResult(
            accepted=True,
            files=files,
            application=result.application,
            outcomes=outcomes,
        )
