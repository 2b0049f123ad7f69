"""Deep Report - planned, researched and human-reviewed report generation."""

__version__ = "0.1.0"
