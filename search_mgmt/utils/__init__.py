"""Shared helpers (JSON rendering, console reporting, sample names)."""
