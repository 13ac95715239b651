"""Identifier, filename and scalar type rules shared by every IR consumer."""

import re
from typing import Optional, Tuple

SCALAR_TYPES = (
    "boolean",
    "int",
    "double",
    "string",
    "uri",
    "uuid",
    "datetime",
)

# Types eligible for GIN trigram (full-text) indexes
TEXT_TYPES = ("string",)

IDENTIFIER_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")
RELATION_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
FILENAME_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+\.prisma$")
SCHEMA_FILENAME_PATTERN = re.compile(r"^schema-(\d+)-([a-z0-9_]+)\.prisma$")

SCHEMA_EXTENSION = "prisma"


def is_valid_identifier(value: str) -> bool:
    """Model and field names: lowercase letter, then lowercase letters, digits or underscores."""
    return isinstance(value, str) and IDENTIFIER_PATTERN.match(value) is not None


def is_valid_relation_name(value: str) -> bool:
    """Relation property names: letter or underscore, then letters, digits or underscores."""
    return isinstance(value, str) and RELATION_NAME_PATTERN.match(value) is not None


def is_known_scalar_type(value: str) -> bool:
    return value in SCALAR_TYPES


def is_text_type(value: str) -> bool:
    return value in TEXT_TYPES


def is_valid_filename(value: str) -> bool:
    return isinstance(value, str) and FILENAME_PATTERN.match(value) is not None


def parse_schema_filename(value: str) -> Optional[Tuple[int, str]]:
    """
    Split a conventional ``schema-{order}-{domain}.prisma`` filename.

    Returns:
        ``(order, domain)`` or None when the name does not follow the convention
    """
    match = SCHEMA_FILENAME_PATTERN.match(value or "")
    if match is None:
        return None
    return int(match.group(1)), match.group(2)


def normalize_domain(value: str) -> str:
    """Turn a free-form domain hint ("Order Items") into a filename slug ("order_items")."""
    slug = re.sub(r"[^a-z0-9]+", "_", value.strip().lower()).strip("_")
    if not slug:
        raise ValueError(f"Domain hint {value!r} has no usable characters")
    return slug


def format_schema_filename(order: int, domain: str) -> str:
    return f"schema-{order:02d}-{normalize_domain(domain)}.{SCHEMA_EXTENSION}"
