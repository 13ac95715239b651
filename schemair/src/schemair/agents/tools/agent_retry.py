"""Re-prompting loop for LLM calls that must return a pydantic-valid JSON object."""

from typing import Callable, Dict, List, Optional, Type, TypeVar
from pydantic import BaseModel, ValidationError
from schemair.agents.tools.json_parser import extract_json, JSONParseError
from schemair.config.settings import get_settings
from schemair.config.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

ERROR_MESSAGE_TRUNCATE_LENGTH = 200
VALIDATION_DATA_TRUNCATE_LENGTH = 2000


def format_validation_error(error: Exception) -> str:
    """
    Turn a pydantic ValidationError into a field-by-field message for the LLM.

    Args:
        error: The exception raised while validating the reply

    Returns:
        A formatted error message with field paths
    """
    if not isinstance(error, ValidationError):
        error_str = str(error)
        if len(error_str) > 500:
            error_str = error_str[:500] + "..."
        return f"Validation error: {error_str}"

    lines = ["The JSON structure failed validation. Here are the specific errors:"]
    for err in error.errors():
        loc = " -> ".join(str(x) for x in err.get("loc", []))
        lines.append(f"\n- Field: {loc}")
        lines.append(f"  Error: {err.get('msg', 'Validation error')}")
        error_type = err.get("type", "")
        if error_type == "literal_error":
            lines.append("  Fix: Use exactly one of the allowed values")
        elif error_type == "missing":
            lines.append("  Fix: Add the missing required field")
        elif error_type == "extra_forbidden":
            lines.append("  Fix: Remove this key; it is not part of the schema")
    return "\n".join(lines)


def call_llm_with_retry(
    messages: List[Dict[str, str]],
    ir_model: Type[T],
    chat_fn: Callable[[List[Dict[str, str]]], str],
    max_retries: Optional[int] = None,
    pre_process: Optional[Callable[[dict], dict]] = None,
) -> T:
    """
    Call the LLM until its reply parses into ``ir_model``.

    Parse and shape errors are appended to ``messages`` as user turns so the
    next reply can correct them.

    Args:
        messages: Conversation so far (extended in place)
        ir_model: Pydantic model class to validate against
        chat_fn: Function sending messages and returning the reply text
        max_retries: Maximum attempts (default: settings.agent_max_retries)
        pre_process: Optional fix-up applied to the parsed dict before validation

    Returns:
        Validated model instance

    Raises:
        JSONParseError: If JSON parsing fails on the last attempt
        ValidationError: If shape validation fails on the last attempt
    """
    attempts = max_retries or get_settings().agent_max_retries
    data = None

    for attempt in range(attempts):
        last = attempt == attempts - 1
        raw = chat_fn(messages)
        messages.append({"role": "assistant", "content": raw})
        try:
            data = extract_json(raw)
            if pre_process:
                data = pre_process(data)
            return ir_model.model_validate(data)

        except JSONParseError as e:
            if last:
                raise
            logger.warning(
                f"JSON parsing failed (attempt {attempt + 1}/{attempts}): {str(e)[:ERROR_MESSAGE_TRUNCATE_LENGTH]}"
            )
            messages.append({
                "role": "user",
                "content": "Please return ONLY one valid JSON object, no markdown formatting or explanations.",
            })

        except ValidationError as e:
            if last:
                logger.error(f"Validation error: {e}")
                if data:
                    logger.error(
                        f"Data that failed validation (first {VALIDATION_DATA_TRUNCATE_LENGTH} chars): "
                        f"{str(data)[:VALIDATION_DATA_TRUNCATE_LENGTH]}"
                    )
                raise
            logger.warning(
                f"IR validation failed (attempt {attempt + 1}/{attempts}): "
                f"{str(e)[:ERROR_MESSAGE_TRUNCATE_LENGTH]}"
            )
            messages.append({
                "role": "user",
                "content": (
                    f"The previous response failed validation.\n\n{format_validation_error(e)}\n\n"
                    f"Please fix these specific issues in your JSON response."
                ),
            })

    raise RuntimeError("Retry loop completed without returning")
