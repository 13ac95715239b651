"""Producer interface and the shared schema board."""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from schemair.ir.schema import Application, CandidateModels, Component, File
from schemair.ir.validators import Violation
from schemair.config.logging import get_logger

logger = get_logger(__name__)


class ProducerError(Exception):
    """External producer failure (timeout, malformed response, transport error)."""

    pass


class SchemaBoard(BaseModel):
    """
    Accumulates one File per component.

    Each component publishes its own file once; a repaired file replaces the
    earlier one only when ``replace`` is set. ``assemble()`` lays the files out
    in plan order after all producers have finished.
    """

    components: List[Component]
    files: Dict[str, File] = Field(default_factory=dict)

    def publish(self, file: File, replace: bool = False) -> None:
        if file.filename not in {c.filename for c in self.components}:
            raise ValueError(f"No component owns '{file.filename}'")
        if file.filename in self.files and not replace:
            raise ValueError(f"File '{file.filename}' was already published")
        self.files[file.filename] = file
        logger.debug(f"Published {file.filename} ({len(file.models)} models)")

    def assemble(self) -> Application:
        return Application(
            files=[self.files[c.filename] for c in self.components if c.filename in self.files]
        )


class BaseProducer:
    """Base class for anything that proposes models for a component."""

    name: str = "base_producer"

    def propose(
        self,
        target: Component,
        others: List[Component],
        context: str,
        feedback: Optional[List[Violation]] = None,
    ) -> CandidateModels:
        """
        Propose models for ``target``.

        Args:
            target: Component to produce models for
            others: Every other component (read-only ownership boundaries)
            context: Opaque requirements text
            feedback: Violations found in the previous attempt, if any

        Returns:
            Candidate models for the component

        Raises:
            ProducerError: If the producer cannot deliver a candidate
        """
        logger.info(f"Running producer: {self.name}")
        raise NotImplementedError(f"Producer {self.name} must implement propose()")
