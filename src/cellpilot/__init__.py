"""CellPilot - free-text spreadsheet commands as typed actions."""

__version__ = "0.1.0"
