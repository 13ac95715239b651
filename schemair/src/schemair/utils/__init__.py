"""Utility functions for common operations."""

from .ir_io import (
    load_application,
    load_components,
    save_application,
    save_components,
    write_rendered_files,
)

__all__ = [
    "load_application",
    "load_components",
    "save_application",
    "save_components",
    "write_rendered_files",
]
