"""Schema text rendering."""

from .prisma import RenderError, render_application, render_file, render_model

__all__ = ["RenderError", "render_application", "render_file", "render_model"]
