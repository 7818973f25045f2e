"""Cooklang diagnostics, analysis options and configurable unit conversion."""

__version__ = "0.17.4"

__all__ = ["analysis", "builder", "converter", "error", "units", "units_file"]