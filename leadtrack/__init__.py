"""Lead tracker: lead file import and dashboard aggregation."""

__version__ = "0.1.0"
