"""Error handling utilities for producer operations."""

from pydantic import ValidationError
from schemair.agents.base import ProducerError
from schemair.agents.tools.json_parser import JSONParseError
from schemair.config.logging import get_logger

logger = get_logger(__name__)


def handle_producer_error(producer_name: str, operation: str, error: Exception) -> None:
    """
    Log a producer failure and re-raise it as ProducerError.

    Args:
        producer_name: Name of the producer (e.g., "schema_designer")
        operation: Description of the operation (e.g., "propose schema-02-sales.prisma")
        error: The exception that occurred

    Raises:
        ProducerError: Always, chained to ``error``
    """
    if isinstance(error, ProducerError):
        raise error
    if isinstance(error, (JSONParseError, ValidationError)):
        logger.error(f"{producer_name}: Failed to {operation}: malformed response: {error}")
        raise ProducerError(f"{producer_name}: malformed response during {operation}: {error}") from error
    logger.error(f"{producer_name}: Failed to {operation}: {error}", exc_info=True)
    raise ProducerError(f"{producer_name}: {operation} failed: {error}") from error
