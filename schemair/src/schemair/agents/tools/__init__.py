"""Tools for producer operations."""

from .llm_client import chat
from .json_parser import extract_json, JSONParseError

__all__ = ["chat", "extract_json", "JSONParseError"]
