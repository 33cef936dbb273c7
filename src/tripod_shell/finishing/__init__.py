"""Finishing: organic smoothing, surface extraction and export."""

from .build import apply_organic_smoothing, extract_surface, export_shell, ExportResult

__all__ = ["apply_organic_smoothing", "extract_surface", "export_shell", "ExportResult"]
