"""Document export helpers."""

from .markdown import export_prd_markdown, prd_to_markdown

__all__ = ["export_prd_markdown", "prd_to_markdown"]
