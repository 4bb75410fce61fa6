"""Bulk people import: tabular file -> normalized person records -> matching service."""

__version__ = "0.1.0"
