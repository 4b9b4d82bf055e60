"""Text rendering of grid data."""

from .formatter import EMPTY_WORKSHEET, OutputFormatter, format_grid, render_value

__all__ = ["EMPTY_WORKSHEET", "OutputFormatter", "format_grid", "render_value"]
