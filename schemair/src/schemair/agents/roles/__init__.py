"""Producer role implementations."""

from .schema_designer import SchemaDesigner

__all__ = ["SchemaDesigner"]
