"""Producer-driven schema generation."""

from .base import BaseProducer, ProducerError, SchemaBoard
from .orchestrator import GenerationResult, SchemaOrchestrator

__all__ = ["BaseProducer", "ProducerError", "SchemaBoard", "GenerationResult", "SchemaOrchestrator"]
